import unittest
from unittest import mock

import requests

from ticket_resale.extensions import db
from ticket_resale.models import Notification, Payout
from ticket_resale.services import settlement_service
from tests.base import RAZORPAY_POST, BaseTestCase, fake_response


class PayoutTestCase(BaseTestCase):
    def setUp(self):
        super().setUp()
        ticket = self.make_ticket()
        self.make_pending_transaction(ticket, order_id='order_PAY1')
        self.payout = settlement_service.settle_payment('order_PAY1', 'pay_1').payout
        Notification.query.delete()
        db.session.commit()

    def request_payout(self, user=None, **body):
        body.setdefault('payout_id', str(self.payout.id))
        return self.post_json('/api/payouts', body, user=user or self.seller)


class TestIssuePayout(PayoutTestCase):
    def test_pays_to_upi_id(self):
        response = fake_response(200, {'id': 'pout_001', 'status': 'processing'})
        with mock.patch(RAZORPAY_POST, return_value=response) as post:
            resp = self.request_payout(upi_id='asha@okbank')

        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertTrue(body['success'])
        self.assertEqual(body['external_payout_id'], 'pout_001')
        self.assertEqual(body['amount'], 760.0)
        self.assertEqual(body['status'], 'processed')

        sent = post.call_args.kwargs['json']
        self.assertEqual(sent['amount'], 76000)
        self.assertEqual(sent['mode'], 'UPI')
        self.assertEqual(sent['fund_account']['vpa']['address'], 'asha@okbank')

        db.session.refresh(self.payout)
        self.assertEqual(self.payout.status, 'processed')
        self.assertEqual(self.payout.destination, 'asha@okbank')
        self.assertIsNotNone(self.payout.processed_at)
        self.assertEqual(Notification.query.one().title, 'Payment Sent!')

    def test_phone_number_becomes_vpa(self):
        response = fake_response(200, {'id': 'pout_002', 'status': 'queued'})
        with mock.patch(RAZORPAY_POST, return_value=response) as post:
            resp = self.request_payout(phone_number='9876543210')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(post.call_args.kwargs['json']['fund_account']['vpa']['address'], '9876543210@paytm')

    def test_processed_payout_is_not_paid_twice(self):
        with mock.patch(RAZORPAY_POST, return_value=fake_response(200, {'id': 'pout_001', 'status': 'processed'})):
            self.request_payout(upi_id='asha@okbank')
        with mock.patch(RAZORPAY_POST) as post:
            resp = self.request_payout(upi_id='asha@okbank')
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.get_json()['error_code'], 'PAYOUT_NOT_PENDING')
        post.assert_not_called()

    def test_retryable_error_keeps_payout_pending(self):
        with mock.patch(RAZORPAY_POST, return_value=fake_response(503, {'error': 'unavailable'})):
            resp = self.request_payout(upi_id='asha@okbank')
        self.assertEqual(resp.status_code, 502)
        db.session.refresh(self.payout)
        self.assertEqual(self.payout.status, 'pending')
        self.assertEqual(Notification.query.count(), 0)

        with mock.patch(RAZORPAY_POST, return_value=fake_response(200, {'id': 'pout_003', 'status': 'processing'})):
            resp = self.request_payout(upi_id='asha@okbank')
        self.assertEqual(resp.status_code, 200)

    def test_retry_reuses_idempotency_key(self):
        with mock.patch(RAZORPAY_POST, return_value=fake_response(503, {'error': 'unavailable'})) as first:
            self.request_payout(upi_id='asha@okbank')
        with mock.patch(RAZORPAY_POST, return_value=fake_response(200, {'id': 'pout_004', 'status': 'processing'})) as second:
            self.request_payout(upi_id='asha@okbank')

        expected = f"payout_{self.payout.id.hex}"
        self.assertEqual(first.call_args.kwargs['headers']['X-Payout-Idempotency'], expected)
        self.assertEqual(second.call_args.kwargs['headers']['X-Payout-Idempotency'], expected)

    def test_timeout_keeps_payout_pending(self):
        with mock.patch(RAZORPAY_POST, side_effect=requests.Timeout('slow')):
            resp = self.request_payout(upi_id='asha@okbank')
        self.assertEqual(resp.status_code, 502)
        db.session.refresh(self.payout)
        self.assertEqual(self.payout.status, 'pending')

    def test_rejected_request_fails_payout(self):
        error = {'error': {'code': 'BAD_REQUEST_ERROR', 'description': 'Invalid VPA'}}
        with mock.patch(RAZORPAY_POST, return_value=fake_response(400, error)):
            resp = self.request_payout(upi_id='not-a-vpa')
        self.assertEqual(resp.status_code, 422)
        self.assertNotIn('Invalid VPA', resp.get_json()['message'])

        db.session.refresh(self.payout)
        self.assertEqual(self.payout.status, 'failed')
        self.assertIn('Invalid VPA', self.payout.failure_reason)
        self.assertEqual(Notification.query.one().title, 'Payout Failed')

    def test_rejected_status_fails_payout(self):
        body = {'id': 'pout_004', 'status': 'rejected', 'status_details': {'description': 'Beneficiary bank down'}}
        with mock.patch(RAZORPAY_POST, return_value=fake_response(200, body)):
            resp = self.request_payout(upi_id='asha@okbank')
        self.assertEqual(resp.status_code, 422)
        db.session.refresh(self.payout)
        self.assertEqual(self.payout.status, 'failed')
        self.assertEqual(self.payout.failure_reason, 'Beneficiary bank down')

    def test_someone_elses_payout(self):
        with mock.patch(RAZORPAY_POST) as post:
            resp = self.request_payout(user=self.buyer, upi_id='ravi@okbank')
        self.assertEqual(resp.status_code, 404)
        post.assert_not_called()

    def test_destination_required(self):
        with mock.patch(RAZORPAY_POST) as post:
            resp = self.request_payout()
        self.assertEqual(resp.status_code, 400)
        post.assert_not_called()


class TestPayoutListings(PayoutTestCase):
    def test_seller_lists_own_payouts(self):
        resp = self.get_json('/api/payouts', user=self.seller)
        data = resp.get_json()['data']
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]['status'], 'pending')
        self.assertNotIn('failure_reason', data[0])

        resp = self.get_json('/api/payouts', user=self.buyer)
        self.assertEqual(resp.get_json()['data'], [])

    def test_admin_sees_failed_payouts(self):
        admin = self.make_user('admin@example.com', role='admin')
        with mock.patch(RAZORPAY_POST, return_value=fake_response(400, {'error': {'description': 'Invalid VPA'}})):
            self.request_payout(upi_id='bad')

        resp = self.get_json('/api/admin/payouts?status=failed', user=admin)
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()['data']
        self.assertEqual(len(data), 1)
        self.assertIn('Invalid VPA', data[0]['failure_reason'])
        self.assertEqual(data[0]['upi_id'], 'bad')

        resp = self.get_json('/api/admin/payouts?status=pending', user=admin)
        self.assertEqual(resp.get_json()['data'], [])

    def test_admin_list_rejects_unknown_status(self):
        admin = self.make_user('admin@example.com', role='admin')
        resp = self.get_json('/api/admin/payouts?status=lost', user=admin)
        self.assertEqual(resp.status_code, 400)


if __name__ == '__main__':
    unittest.main()
