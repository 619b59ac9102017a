from django.urls import path

from .views import (
    RegisterView,
    LoginView,
    RefreshTokenView,
    MeView,
    MemberListView,
    MemberDetailView,
)

app_name = 'accounts'

urlpatterns = [
    path('register/', RegisterView.as_view(), name='register'),
    path('login/', LoginView.as_view(), name='login'),
    path('refresh/', RefreshTokenView.as_view(), name='refresh'),
    path('me/', MeView.as_view(), name='me'),
    path('members/', MemberListView.as_view(), name='member-list'),
    path('members/<int:member_id>/', MemberDetailView.as_view(), name='member-detail'),
]
