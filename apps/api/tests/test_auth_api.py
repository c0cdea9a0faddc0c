"""
Tests for the auth HTTP surface: tokens, current user, role gate endpoint,
logout and account status administration.
"""
import pytest
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from apps.authz.models import UserStatusChoices
from apps.core.models import AuditLog

AUTH_URL = '/api/v1/auth/'


@pytest.mark.django_db
class TestTokens:

    def test_obtain_and_use_token(self, api_client, dentist):
        response = api_client.post(f'{AUTH_URL}token/', {
            'email': 'dentist@test.com',
            'password': 'testpass123',
        }, format='json')

        assert response.status_code == 200
        access = response.data['access']

        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        me = api_client.get(f'{AUTH_URL}me/')
        assert me.status_code == 200
        assert me.data['email'] == 'dentist@test.com'

    def test_bad_credentials(self, api_client, dentist):
        response = api_client.post(f'{AUTH_URL}token/', {
            'email': 'dentist@test.com',
            'password': 'wrong',
        }, format='json')

        assert response.status_code == 401
        assert response.data['error_code'] == 'UNAUTHENTICATED'


@pytest.mark.django_db
class TestCurrentUser:

    def test_patient_me_reports_landing_page_and_profile_flag(self, patient_client):
        response = patient_client.get(f'{AUTH_URL}me/')

        assert response.status_code == 200
        assert response.data['role'] == 'patient'
        assert response.data['landing_page'] == '/patient/dashboard'
        assert response.data['profile_incomplete'] is True
        assert 'request_appointments' in response.data['permissions']
        assert 'manage_users' not in response.data['permissions']

    def test_admin_permissions_are_sorted(self, admin_client):
        response = admin_client.get(f'{AUTH_URL}me/')

        assert response.data['permissions'] == sorted(response.data['permissions'])
        assert 'manage_users' in response.data['permissions']

    def test_suspended_user_me_is_403(self, client_for, suspended_patient):
        response = client_for(suspended_patient).get(f'{AUTH_URL}me/')

        assert response.status_code == 403
        assert response.data['error_code'] == 'ACCOUNT_SUSPENDED'

    def test_anonymous_me_is_401(self, api_client):
        assert api_client.get(f'{AUTH_URL}me/').status_code == 401


@pytest.mark.django_db
class TestAuthorizeEndpoint:

    def test_allowed_decision(self, api_client, dentist):
        token = str(AccessToken.for_user(dentist))

        response = api_client.post(f'{AUTH_URL}authorize/', {
            'session_token': token,
            'required_roles': ['staff'],
            'require_complete_profile': True,
        }, format='json')

        assert response.status_code == 200
        assert response.data['allowed'] is True
        assert response.data['caller_role'] == 'staff'
        assert response.data['landing_page'] == '/staff/dashboard'

    def test_token_from_authorization_header(self, api_client, admin_user):
        token = str(AccessToken.for_user(admin_user))
        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = api_client.post(f'{AUTH_URL}authorize/', {'required_roles': ['admin']}, format='json')

        assert response.status_code == 200
        assert response.data['allowed'] is True

    def test_role_mismatch(self, api_client, patient_user):
        token = str(AccessToken.for_user(patient_user))

        response = api_client.post(f'{AUTH_URL}authorize/', {
            'session_token': token,
            'required_roles': ['admin'],
        }, format='json')

        assert response.status_code == 403
        assert response.data['error_code'] == 'ROLE_MISMATCH'
        assert response.data['redirect_to'] == '/patient/dashboard'

    def test_missing_token_is_401(self, api_client):
        response = api_client.post(f'{AUTH_URL}authorize/', {'required_roles': ['admin']}, format='json')

        assert response.status_code == 401
        assert response.data['message'] == 'Authentication required'

    def test_unknown_role_is_400(self, api_client, admin_user):
        token = str(AccessToken.for_user(admin_user))

        response = api_client.post(f'{AUTH_URL}authorize/', {
            'session_token': token,
            'required_roles': ['owner'],
        }, format='json')

        assert response.status_code == 400

    def test_suspended_session_is_terminated(self, api_client, suspended_patient):
        refresh = RefreshToken.for_user(suspended_patient)

        response = api_client.post(f'{AUTH_URL}authorize/', {
            'session_token': str(refresh.access_token),
        }, format='json')

        assert response.status_code == 403
        assert response.data['error_code'] == 'ACCOUNT_SUSPENDED'
        assert BlacklistedToken.objects.filter(token__jti=refresh['jti']).exists()


@pytest.mark.django_db
class TestLogout:

    def test_logout_blacklists_refresh_token(self, client_for, patient_user):
        refresh = RefreshToken.for_user(patient_user)

        response = client_for(patient_user).post(f'{AUTH_URL}logout/', {'refresh': str(refresh)}, format='json')

        assert response.status_code == 205
        assert BlacklistedToken.objects.filter(token__jti=refresh['jti']).exists()

    def test_cannot_logout_someone_else(self, client_for, patient_user, other_patient):
        refresh = RefreshToken.for_user(other_patient)

        response = client_for(patient_user).post(f'{AUTH_URL}logout/', {'refresh': str(refresh)}, format='json')

        assert response.status_code == 400
        assert not BlacklistedToken.objects.exists()

    def test_garbage_token(self, client_for, patient_user):
        response = client_for(patient_user).post(f'{AUTH_URL}logout/', {'refresh': 'nope'}, format='json')
        assert response.status_code == 400


@pytest.mark.django_db
class TestUserStatus:

    def url(self, user):
        return f'{AUTH_URL}users/{user.pk}/status/'

    def test_admin_suspends_user_and_sessions_end(self, admin_client, admin_user, dentist):
        RefreshToken.for_user(dentist)

        response = admin_client.post(self.url(dentist), {'status': 'suspended', 'reason': 'License review'},
                                     format='json')

        assert response.status_code == 200
        assert response.data['status'] == 'suspended'
        dentist.refresh_from_db()
        assert dentist.status == UserStatusChoices.SUSPENDED
        assert OutstandingToken.objects.filter(user=dentist, blacklistedtoken__isnull=True).count() == 0

        entry = AuditLog.objects.get(action='user_status_changed')
        assert entry.actor_id == admin_user.pk
        assert entry.target_id == str(dentist.pk)
        assert entry.detail['from_status'] == 'active'
        assert entry.detail['to_status'] == 'suspended'
        assert entry.detail['terminated_sessions'] == 1

    def test_reactivation(self, admin_client, suspended_patient):
        response = admin_client.post(self.url(suspended_patient), {'status': 'active'}, format='json')

        assert response.status_code == 200
        suspended_patient.refresh_from_db()
        assert suspended_patient.status == 'active'

    def test_admin_cannot_change_own_status(self, admin_client, admin_user):
        response = admin_client.post(self.url(admin_user), {'status': 'inactive'}, format='json')

        assert response.status_code == 400

    @pytest.mark.parametrize('client_fixture', ['dentist_client', 'patient_client'])
    def test_non_admin_is_forbidden(self, request, client_fixture, other_patient):
        client = request.getfixturevalue(client_fixture)

        response = client.post(self.url(other_patient), {'status': 'suspended'}, format='json')

        assert response.status_code == 403
        assert response.data['error_code'] == 'ROLE_MISMATCH'
        other_patient.refresh_from_db()
        assert other_patient.status == 'active'

    def test_unknown_user_is_404(self, admin_client):
        import uuid
        response = admin_client.post(f'{AUTH_URL}users/{uuid.uuid4()}/status/', {'status': 'active'},
                                     format='json')
        assert response.status_code == 404
