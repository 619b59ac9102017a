import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from django.db.models import Q
from django.shortcuts import get_object_or_404

from .models import Member
from .permissions import IsDirector
from .serializers import (
    RegisterSerializer,
    LoginSerializer,
    MemberSerializer,
    MemberAdminSerializer,
)

logger = logging.getLogger(__name__)


def _token_pair(user):
    refresh = RefreshToken.for_user(user)
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


class RegisterView(APIView):
    """
    Register a new carpool member

    POST Body:
    {
        "username": "jdoe",
        "email": "jdoe@example.com",
        "password": "password123",
        "phone_number": "9795550100",
        "gender": "female",
        "pronouns": "she/her"
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            logger.info("Registered member %s", user.username)

            return Response({
                'message': 'Member registered successfully',
                'user': MemberSerializer(user).data,
                'tokens': _token_pair(user),
            }, status=status.HTTP_201_CREATED)

        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class LoginView(APIView):
    """Login with username and password to get JWT tokens"""
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data

        return Response({
            "message": "Login successful",
            "user": MemberSerializer(user).data,
            "tokens": _token_pair(user),
        }, status=status.HTTP_200_OK)


class RefreshTokenView(APIView):
    """Refresh JWT access token"""
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        refresh_token = request.data.get('refresh')

        if not refresh_token:
            return Response(
                {'error': 'Refresh token is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            refresh = RefreshToken(refresh_token)
        except TokenError:
            return Response(
                {'error': 'Invalid refresh token'},
                status=status.HTTP_401_UNAUTHORIZED
            )
        return Response({'access': str(refresh.access_token)})


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(MemberSerializer(request.user).data)

    def patch(self, request):
        serializer = MemberSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class MemberListView(APIView):
    """
    Member directory for directors

    Query params:
        role: only members with this role
        active: "true"/"false" to filter on account status
        search: matches username, name or email
    """
    permission_classes = [IsDirector]

    def get(self, request):
        members = Member.objects.all().order_by('last_name', 'first_name', 'username')

        role = request.query_params.get('role')
        if role:
            members = members.filter(role=role)

        active = request.query_params.get('active')
        if active in ('true', 'false'):
            members = members.filter(is_active=active == 'true')

        search = request.query_params.get('search', '').strip()
        if search:
            members = members.filter(
                Q(username__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
                | Q(email__icontains=search)
            )

        serializer = MemberAdminSerializer(members, many=True)
        return Response({'count': len(serializer.data), 'members': serializer.data})


class MemberDetailView(APIView):
    """
    View or update one member (role, gender, pronouns, phone, active flag)

    Gender feeds the single-rider rule, so changes here show up in car
    eligibility the next time a roster is read.
    """
    permission_classes = [IsDirector]

    def get(self, request, member_id):
        member = get_object_or_404(Member, id=member_id)
        return Response(MemberAdminSerializer(member).data)

    def patch(self, request, member_id):
        member = get_object_or_404(Member, id=member_id)
        serializer = MemberAdminSerializer(
            member, data=request.data, partial=True, context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        changed = sorted(
            name for name, value in serializer.validated_data.items()
            if getattr(member, name) != value
        )
        serializer.save()
        if changed:
            logger.info("%s updated member %s: %s", request.user.username, member.username, changed)
        return Response(serializer.data)
