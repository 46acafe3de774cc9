import unittest
from unittest import mock

from ticket_resale.extensions import db
from ticket_resale.models import EmailLog, User
from tests.base import BaseTestCase

SEND_EMAIL = 'ticket_resale.services.email_service.send_email'


class TestAuth(BaseTestCase):
    def register(self, email='new@example.com', password='password123'):
        return self.client.post('/api/auth/register', json={
            'email': email, 'password': password, 'full_name': 'New User', 'phone': '9999999999',
        })

    def login(self, email='new@example.com', password='password123'):
        return self.client.post('/api/auth/login', json={'email': email, 'password': password})

    def test_register_sends_verification_email(self):
        resp = self.register()
        self.assertEqual(resp.status_code, 201)
        user = User.query.filter_by(email='new@example.com').one()
        self.assertFalse(user.email_verified)
        self.assertEqual(user.kyc_status, 'pending')

        log = EmailLog.query.filter_by(recipient='new@example.com').one()
        self.assertEqual(log.template, 'verification')

    def test_register_validation(self):
        self.assertEqual(self.client.post('/api/auth/register', json={'email': 'x@example.com'}).status_code, 400)
        self.assertEqual(self.register(email='not-an-email').status_code, 400)
        self.assertEqual(self.register(password='short').status_code, 400)

    def test_duplicate_email(self):
        self.register()
        self.assertEqual(self.register().status_code, 409)

    def test_verify_email_with_token_from_email(self):
        with mock.patch(SEND_EMAIL) as send_email:
            self.register()
        url = send_email.call_args.kwargs['template_data']['verificationUrl']
        token = url.split('token=')[1]

        resp = self.client.post('/api/auth/verify-email', json={'token': token})
        self.assertEqual(resp.status_code, 200)
        user = User.query.filter_by(email='new@example.com').one()
        db.session.refresh(user)
        self.assertTrue(user.email_verified)

    def test_verification_token_is_not_a_session_token(self):
        with mock.patch(SEND_EMAIL) as send_email:
            self.register()
        token = send_email.call_args.kwargs['template_data']['verificationUrl'].split('token=')[1]
        resp = self.client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
        self.assertEqual(resp.status_code, 400)

    def test_access_token_cannot_verify_email(self):
        resp = self.client.post('/api/auth/verify-email', json={'token': self.auth_headers(self.buyer)['Authorization'][7:]})
        self.assertEqual(resp.status_code, 400)

    def test_garbage_token(self):
        resp = self.client.post('/api/auth/verify-email', json={'token': 'garbage'})
        self.assertEqual(resp.status_code, 400)

    def test_login_and_me(self):
        self.register()
        resp = self.login()
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertIn('refresh_token', body)

        resp = self.client.get('/api/auth/me', headers={'Authorization': f"Bearer {body['access_token']}"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['email'], 'new@example.com')

    def test_wrong_password(self):
        self.register()
        self.assertEqual(self.login(password='wrongpassword').status_code, 401)

    def test_refresh(self):
        self.register()
        refresh_token = self.login().get_json()['refresh_token']
        resp = self.client.post('/api/auth/refresh', headers={'Authorization': f'Bearer {refresh_token}'})
        self.assertEqual(resp.status_code, 200)
        self.assertIn('access_token', resp.get_json())

    def test_logout_revokes_token(self):
        headers = self.auth_headers(self.buyer)
        resp = self.client.post('/api/auth/logout', headers=headers)
        self.assertEqual(resp.status_code, 200)
        resp = self.client.get('/api/auth/me', headers=headers)
        self.assertEqual(resp.status_code, 401)

    def test_resend_verification(self):
        unverified = self.make_user('pending@example.com', email_verified=False)
        with mock.patch(SEND_EMAIL) as send_email:
            resp = self.post_json('/api/auth/resend-verification', {}, user=unverified)
        self.assertEqual(resp.status_code, 200)
        send_email.assert_called_once()

        resp = self.post_json('/api/auth/resend-verification', {}, user=self.buyer)
        self.assertEqual(resp.status_code, 409)


if __name__ == '__main__':
    unittest.main()
