"""
Authz URLs - Tokens, current user, role gate, account status
"""
from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .views import AuthorizeView, CurrentUserView, LogoutView, UserStatusView

urlpatterns = [
    path('token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('logout/', LogoutView.as_view(), name='logout'),
    path('me/', CurrentUserView.as_view(), name='current_user'),
    path('authorize/', AuthorizeView.as_view(), name='authorize'),
    path('users/<uuid:pk>/status/', UserStatusView.as_view(), name='user_status'),
]
