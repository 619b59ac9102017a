from rest_framework import serializers
from django.contrib.auth import authenticate

from .models import Member


class MemberSerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Member
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "full_name",
            "role",
            "phone_number",
            "gender",
            "pronouns",
        ]
        read_only_fields = ["id", "role", "full_name"]

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username


class MemberBasicSerializer(serializers.ModelSerializer):
    """Lite member info embedded in rosters and rides."""
    full_name = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = Member
        fields = ["id", "username", "full_name", "gender", "phone_number"]

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(username=data["username"], password=data["password"])
        if not user:
            raise serializers.ValidationError("Invalid username or password")
        return user


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)

    class Meta:
        model = Member
        fields = ['username', 'password', 'email', 'first_name', 'last_name',
                  'phone_number', 'gender', 'pronouns']

    def validate_email(self, value):
        if value and Member.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        # New registrations are always plain members; directors promote via admin
        return Member.objects.create_user(password=password, role='member', **validated_data)


class MemberAdminSerializer(MemberSerializer):
    """Member record as directors see and edit it."""

    class Meta(MemberSerializer.Meta):
        fields = MemberSerializer.Meta.fields + ["is_active", "date_joined"]
        read_only_fields = ["id", "username", "full_name", "date_joined"]

    def validate_role(self, value):
        request = self.context.get("request")
        if value == "admin" and request and request.user.role != "admin":
            raise serializers.ValidationError("Only admins can grant the admin role")
        return value

    def validate(self, data):
        request = self.context.get("request")
        if request and self.instance is not None and self.instance.pk == request.user.pk:
            if data.get("is_active") is False:
                raise serializers.ValidationError("You cannot deactivate your own account")
            if "role" in data and data["role"] not in Member.DIRECTOR_ROLES:
                raise serializers.ValidationError("You cannot remove your own director role")
        return data
