from types import SimpleNamespace

from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import Member
from accounts.permissions import IsDispatcher, IsDirector
from accounts.views import (
	RegisterView,
	LoginView,
	RefreshTokenView,
	MeView,
	MemberListView,
	MemberDetailView,
)


class MemberAuthTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	def test_register_always_creates_plain_member(self):
		request = self.factory.post('/api/auth/register/', {
			'username': 'jdoe',
			'password': 'password123',
			'email': 'jdoe@example.com',
			'gender': 'Female',
			'role': 'director',
		}, format='json')
		response = RegisterView.as_view()(request)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['user']['role'], 'member')
		self.assertEqual(response.data['user']['gender'], 'Female')
		self.assertIn('access', response.data['tokens'])
		self.assertEqual(Member.objects.get(username='jdoe').role, 'member')

	def test_duplicate_email(self):
		Member.objects.create_user(username='first', password='password123', email='same@example.com')
		request = self.factory.post('/api/auth/register/', {
			'username': 'second',
			'password': 'password123',
			'email': 'SAME@example.com',
		}, format='json')
		response = RegisterView.as_view()(request)

		self.assertEqual(response.status_code, 400)
		self.assertIn('email', response.data)

	def test_login_and_refresh(self):
		Member.objects.create_user(username='jdoe', password='password123')
		request = self.factory.post('/api/auth/login/', {'username': 'jdoe', 'password': 'password123'}, format='json')
		response = LoginView.as_view()(request)
		self.assertEqual(response.status_code, 200)

		refresh = response.data['tokens']['refresh']
		request = self.factory.post('/api/auth/refresh/', {'refresh': refresh}, format='json')
		response = RefreshTokenView.as_view()(request)
		self.assertEqual(response.status_code, 200)
		self.assertIn('access', response.data)

	def test_bad_credentials(self):
		request = self.factory.post('/api/auth/login/', {'username': 'nobody', 'password': 'x'}, format='json')
		response = LoginView.as_view()(request)
		self.assertEqual(response.status_code, 400)

	def test_invalid_refresh_token(self):
		request = self.factory.post('/api/auth/refresh/', {'refresh': 'garbage'}, format='json')
		response = RefreshTokenView.as_view()(request)
		self.assertEqual(response.status_code, 401)

	def test_me_cannot_change_role(self):
		member = Member.objects.create_user(username='jdoe', password='password123')
		request = self.factory.patch('/api/auth/me/', {'role': 'admin', 'pronouns': 'they/them'}, format='json')
		force_authenticate(request, user=member)
		response = MeView.as_view()(request)

		member.refresh_from_db()
		self.assertEqual(response.status_code, 200)
		self.assertEqual(member.role, 'member')
		self.assertEqual(member.pronouns, 'they/them')


class RolePermissionTests(TestCase):
	def _request(self, role):
		user = Member(username=role, role=role)
		return SimpleNamespace(user=user)

	def test_dispatch_roles(self):
		permission = IsDispatcher()
		self.assertFalse(permission.has_permission(self._request('member'), None))
		for role in ('deputy', 'director', 'admin'):
			self.assertTrue(permission.has_permission(self._request(role), None))

	def test_director_roles(self):
		permission = IsDirector()
		self.assertFalse(permission.has_permission(self._request('deputy'), None))
		self.assertTrue(permission.has_permission(self._request('director'), None))

	def test_anonymous(self):
		from django.contrib.auth.models import AnonymousUser
		self.assertFalse(IsDispatcher().has_permission(SimpleNamespace(user=AnonymousUser()), None))


class MemberManagementTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.director = Member.objects.create_user(username='director', password='password123', role='director')
		self.deputy = Member.objects.create_user(username='deputy', password='password123', role='deputy')
		self.jdoe = Member.objects.create_user(
			username='jdoe', password='password123', first_name='Jo', last_name='Doe', gender='',
		)

	def _list(self, user, params=None):
		request = self.factory.get('/api/auth/members/', params or {})
		force_authenticate(request, user=user)
		return MemberListView.as_view()(request)

	def _patch(self, user, member, data):
		request = self.factory.patch(f'/api/auth/members/{member.id}/', data, format='json')
		force_authenticate(request, user=user)
		return MemberDetailView.as_view()(request, member_id=member.id)

	def test_director_lists_members(self):
		response = self._list(self.director)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 3)
		self.assertIn('is_active', response.data['members'][0])

	def test_list_filters(self):
		self.jdoe.is_active = False
		self.jdoe.save()

		response = self._list(self.director, {'role': 'deputy'})
		self.assertEqual([m['username'] for m in response.data['members']], ['deputy'])

		response = self._list(self.director, {'active': 'false'})
		self.assertEqual([m['username'] for m in response.data['members']], ['jdoe'])

		response = self._list(self.director, {'search': 'doe'})
		self.assertEqual([m['username'] for m in response.data['members']], ['jdoe'])

	def test_deputy_cannot_manage_members(self):
		self.assertEqual(self._list(self.deputy).status_code, 403)
		response = self._patch(self.deputy, self.jdoe, {'role': 'deputy'})
		self.assertEqual(response.status_code, 403)
		self.jdoe.refresh_from_db()
		self.assertEqual(self.jdoe.role, 'member')

	def test_director_updates_role_gender_and_status(self):
		response = self._patch(self.director, self.jdoe, {
			'role': 'deputy',
			'gender': 'Female',
			'pronouns': 'she/her',
			'phone_number': '9795550123',
			'is_active': False,
		})

		self.assertEqual(response.status_code, 200)
		self.jdoe.refresh_from_db()
		self.assertEqual(self.jdoe.role, 'deputy')
		self.assertEqual(self.jdoe.gender, 'Female')
		self.assertEqual(self.jdoe.pronouns, 'she/her')
		self.assertEqual(self.jdoe.phone_number, '9795550123')
		self.assertFalse(self.jdoe.is_active)

	def test_username_is_read_only(self):
		response = self._patch(self.director, self.jdoe, {'username': 'renamed'})
		self.assertEqual(response.status_code, 200)
		self.jdoe.refresh_from_db()
		self.assertEqual(self.jdoe.username, 'jdoe')

	def test_unknown_role(self):
		response = self._patch(self.director, self.jdoe, {'role': 'captain'})
		self.assertEqual(response.status_code, 400)
		self.assertIn('role', response.data)

	def test_only_admin_grants_admin(self):
		response = self._patch(self.director, self.jdoe, {'role': 'admin'})
		self.assertEqual(response.status_code, 400)

		admin = Member.objects.create_user(username='admin', password='password123', role='admin')
		response = self._patch(admin, self.jdoe, {'role': 'admin'})
		self.assertEqual(response.status_code, 200)

	def test_director_cannot_lock_themselves_out(self):
		response = self._patch(self.director, self.director, {'is_active': False})
		self.assertEqual(response.status_code, 400)
		response = self._patch(self.director, self.director, {'role': 'member'})
		self.assertEqual(response.status_code, 400)
		self.director.refresh_from_db()
		self.assertEqual(self.director.role, 'director')
		self.assertTrue(self.director.is_active)

	def test_missing_member(self):
		request = self.factory.get('/api/auth/members/999/')
		force_authenticate(request, user=self.director)
		response = MemberDetailView.as_view()(request, member_id=999)
		self.assertEqual(response.status_code, 404)
