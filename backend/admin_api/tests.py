from django.test import TestCase, override_settings
from rest_framework.test import APIClient
from rest_framework import status as http_status

from accounts.models import User
from accounts.tokens import tokens_for_staff, tokens_for_user
from social import services as social_services
from social.models import UserReport
from .models import Admin, SubAdmin


@override_settings(OTP_FIXED_CODE='123456')
class StaffAuthTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = Admin.objects.create(phone_number='8000000001', first_name='Ada')

    def test_admin_otp_login(self):
        resp = self.client.post('/api/admin-panel/auth/otp/send/', {'phone_number': '8000000001'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        resp = self.client.post('/api/admin-panel/auth/otp/verify/', {'phone_number': '8000000001', 'otp': '123456'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertIn('access', resp.data)
        self.assertEqual(resp.data['admin']['role'], 'admin')

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {resp.data["access"]}')
        resp = self.client.get('/api/admin-panel/auth/me/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['first_name'], 'Ada')

    def test_unknown_admin_phone_not_created(self):
        resp = self.client.post('/api/admin-panel/auth/otp/send/', {'phone_number': '8000000099'})
        self.assertEqual(resp.status_code, http_status.HTTP_404_NOT_FOUND)
        self.assertFalse(Admin.objects.filter(phone_number='8000000099').exists())

    def test_admin_update_profile(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.patch('/api/admin-panel/auth/me/', {'last_name': 'Lovelace'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['full_name'], 'Ada Lovelace')

    def test_user_token_rejected_on_staff_endpoint(self):
        user = User.objects.create_user('9000000001')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {tokens_for_user(user)["access"]}')
        resp = self.client.get('/api/admin-panel/auth/me/')
        self.assertEqual(resp.status_code, http_status.HTTP_401_UNAUTHORIZED)

    def test_staff_token_rejected_on_user_endpoint(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {tokens_for_staff(self.admin)["access"]}')
        resp = self.client.get('/api/auth/profile/')
        self.assertEqual(resp.status_code, http_status.HTTP_401_UNAUTHORIZED)

    def test_deactivated_admin_token_rejected(self):
        access = tokens_for_staff(self.admin)['access']
        Admin.objects.filter(pk=self.admin.pk).update(is_active=False)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        resp = self.client.get('/api/admin-panel/auth/me/')
        self.assertEqual(resp.status_code, http_status.HTTP_401_UNAUTHORIZED)

    def test_subadmin_signup_and_profile(self):
        self.client.post('/api/subadmin/auth/otp/send/', {'phone_number': '7000000001'})
        resp = self.client.post('/api/subadmin/auth/otp/verify/', {'phone_number': '7000000001', 'otp': '123456'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['approval_status'], 'pending')
        self.assertFalse(resp.data['is_profile_completed'])

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {resp.data["access"]}')
        resp = self.client.put('/api/subadmin/profile/', {'name': 'Sam', 'email': 'sam@example.com'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertTrue(resp.data['subadmin']['is_profile_completed'])

    def test_pending_subadmin_cannot_moderate(self):
        subadmin = SubAdmin.objects.create(phone_number='7000000001')
        self.client.force_authenticate(user=subadmin)
        resp = self.client.get('/api/admin-panel/users/')
        self.assertEqual(resp.status_code, http_status.HTTP_403_FORBIDDEN)

    def test_rejected_subadmin_cannot_login(self):
        SubAdmin.objects.create(phone_number='7000000001', approval_status=SubAdmin.STATUS_REJECTED)
        self.client.post('/api/subadmin/auth/otp/send/', {'phone_number': '7000000001'})
        resp = self.client.post('/api/subadmin/auth/otp/verify/', {'phone_number': '7000000001', 'otp': '123456'})
        self.assertEqual(resp.status_code, http_status.HTTP_403_FORBIDDEN)


class SubAdminManagementTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = Admin.objects.create(phone_number='8000000001')
        self.pending = SubAdmin.objects.create(phone_number='7000000001', name='Pat')
        self.client.force_authenticate(user=self.admin)

    def test_list_and_filter(self):
        SubAdmin.objects.create(
            phone_number='7000000002', name='Quinn',
            approval_status=SubAdmin.STATUS_APPROVED, is_active=True,
        )
        resp = self.client.get('/api/admin-panel/subadmins/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['count'], 2)
        self.assertIn('Content-Range', resp)
        resp = self.client.get('/api/admin-panel/subadmins/?status=active')
        self.assertEqual(resp.data['count'], 1)
        resp = self.client.get('/api/admin-panel/subadmins/pending/')
        self.assertEqual(resp.data['results'][0]['name'], 'Pat')

    def test_approve(self):
        resp = self.client.patch(f'/api/admin-panel/subadmins/{self.pending.id}/approval/', {'action': 'approve'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.pending.refresh_from_db()
        self.assertTrue(self.pending.is_approved)
        self.assertEqual(self.pending.approved_by, self.admin)

    def test_reject(self):
        resp = self.client.patch(
            f'/api/admin-panel/subadmins/{self.pending.id}/approval/',
            {'action': 'reject', 'rejection_reason': 'Incomplete details'},
        )
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.pending.refresh_from_db()
        self.assertEqual(self.pending.approval_status, SubAdmin.STATUS_REJECTED)
        self.assertFalse(self.pending.can_login())

    def test_approval_only_when_pending(self):
        self.client.patch(f'/api/admin-panel/subadmins/{self.pending.id}/approval/', {'action': 'approve'})
        resp = self.client.patch(f'/api/admin-panel/subadmins/{self.pending.id}/approval/', {'action': 'reject'})
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['code'], 'SUBADMIN_NOT_PENDING')

    def test_invalid_action(self):
        resp = self.client.patch(f'/api/admin-panel/subadmins/{self.pending.id}/approval/', {'action': 'promote'})
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)

    def test_toggle_status(self):
        resp = self.client.patch(
            f'/api/admin-panel/subadmins/{self.pending.id}/status/', {'is_active': True}, format='json',
        )
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['message'], 'SubAdmin activated successfully')

    def test_subadmin_cannot_manage_subadmins(self):
        approved = SubAdmin.objects.create(
            phone_number='7000000002', approval_status=SubAdmin.STATUS_APPROVED, is_active=True,
        )
        self.client.force_authenticate(user=approved)
        resp = self.client.get('/api/admin-panel/subadmins/')
        self.assertEqual(resp.status_code, http_status.HTTP_403_FORBIDDEN)

    def test_detail_not_found(self):
        resp = self.client.get('/api/admin-panel/subadmins/99999/')
        self.assertEqual(resp.status_code, http_status.HTTP_404_NOT_FOUND)


class AdminUserTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = Admin.objects.create(phone_number='8000000001')
        self.target_user = User.objects.create_user('9000000001', username='target', full_name='Target User')
        User.objects.create_user('9000000002', username='other')
        self.client.force_authenticate(user=self.admin)

    def test_user_list(self):
        resp = self.client.get('/api/admin-panel/users/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['count'], 2)

    def test_user_list_search(self):
        resp = self.client.get('/api/admin-panel/users/?search=target')
        self.assertEqual(resp.data['count'], 1)

    def test_user_detail(self):
        resp = self.client.get(f'/api/admin-panel/users/{self.target_user.id}/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['username'], 'target')
        self.assertIn('message_count', resp.data)
        self.assertEqual(resp.data['followers_count'], 0)

    def test_user_detail_counts_reports_received(self):
        reporter = User.objects.get(phone_number='9000000002')
        social_services.report_user(reporter, self.target_user.id, 'spam', 'Sends unsolicited links')
        resp = self.client.get(f'/api/admin-panel/users/{self.target_user.id}/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['reports_received'], 1)
        self.assertEqual(resp.data['call_count'], 0)

    def test_deactivate_user(self):
        resp = self.client.patch(
            f'/api/admin-panel/users/{self.target_user.id}/status/', {'is_active': False}, format='json',
        )
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['message'], 'User deactivated successfully')
        self.target_user.refresh_from_db()
        self.assertFalse(self.target_user.is_active)
        resp = self.client.get('/api/admin-panel/users/?status=inactive')
        self.assertEqual(resp.data['count'], 1)

    def test_status_requires_boolean(self):
        resp = self.client.patch(
            f'/api/admin-panel/users/{self.target_user.id}/status/', {'is_active': 'maybe'}, format='json',
        )
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)

    def test_approved_subadmin_can_manage_users(self):
        subadmin = SubAdmin.objects.create(
            phone_number='7000000001', approval_status=SubAdmin.STATUS_APPROVED, is_active=True,
        )
        self.client.force_authenticate(user=subadmin)
        resp = self.client.get('/api/admin-panel/users/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)

    def test_dashboard_stats(self):
        resp = self.client.get('/api/admin-panel/dashboard/stats/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['total_users'], 2)
        self.assertEqual(resp.data['pending_reports'], 0)

    def test_end_user_denied(self):
        self.client.force_authenticate(user=self.target_user)
        resp = self.client.get('/api/admin-panel/dashboard/stats/')
        self.assertEqual(resp.status_code, http_status.HTTP_403_FORBIDDEN)


class ReportModerationTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = Admin.objects.create(phone_number='8000000001')
        alice = User.objects.create_user('9000000001')
        bob = User.objects.create_user('9000000002')
        self.report = UserReport.objects.create(
            reporter=alice, reported_user=bob, report_type='harassment', description='Rude messages',
        )
        self.client.force_authenticate(user=self.admin)

    def test_list_reports(self):
        resp = self.client.get('/api/admin-panel/reports/?status=pending')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['count'], 1)
        resp = self.client.get('/api/admin-panel/reports/?type=spam')
        self.assertEqual(resp.data['count'], 0)

    def test_resolve_report(self):
        resp = self.client.patch(
            f'/api/admin-panel/reports/{self.report.id}/',
            {'status': 'resolved', 'admin_notes': 'User warned'},
        )
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['report']['resolved_by_role'], 'admin')
        self.assertEqual(resp.data['report']['resolved_by_id'], self.admin.id)

        resp = self.client.patch(f'/api/admin-panel/reports/{self.report.id}/', {'status': 'dismissed'})
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['error'], 'Report has already been reviewed')

    def test_dismiss_report(self):
        resp = self.client.patch(f'/api/admin-panel/reports/{self.report.id}/', {'status': 'dismissed'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.report.refresh_from_db()
        self.assertEqual(self.report.status, UserReport.STATUS_DISMISSED)
        self.assertIsNone(self.report.resolved_at)

    def test_report_stats(self):
        resp = self.client.get('/api/admin-panel/reports/stats/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['total_reports'], 1)
        self.assertEqual(resp.data['by_type'], {'harassment': 1})
