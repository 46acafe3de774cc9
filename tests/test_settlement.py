import unittest
from decimal import Decimal
from unittest import mock

import stripe

from ticket_resale.errors import InconsistencyError
from ticket_resale.extensions import db
from ticket_resale.models import Notification, Payout, Transaction
from ticket_resale.services import settlement_service
from tests.base import BaseTestCase, razorpay_checkout_signature, stripe_object


class TestRazorpayVerify(BaseTestCase):
    def setUp(self):
        super().setUp()
        self.ticket = self.make_ticket()
        self.transaction = self.make_pending_transaction(self.ticket, order_id='order_ABC123')

    def verify(self, payment_id='pay_XYZ789', signature=None, user=None, **extra):
        body = {
            'razorpay_order_id': 'order_ABC123',
            'razorpay_payment_id': payment_id,
            'razorpay_signature': signature or razorpay_checkout_signature('order_ABC123', payment_id),
        }
        body.update(extra)
        return self.post_json('/api/payments/razorpay/verify', body, user=user or self.buyer)

    def test_settles_purchase(self):
        resp = self.verify()
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertTrue(body['success'])
        self.assertFalse(body['already_settled'])
        self.assertEqual(body['payment_id'], 'pay_XYZ789')
        self.assertEqual(body['ticket']['status'], 'sold')

        db.session.refresh(self.transaction)
        self.assertEqual(self.transaction.status, 'completed')
        self.assertEqual(self.transaction.escrow_status, 'released')
        self.assertEqual(self.transaction.gateway_payment_id, 'pay_XYZ789')
        self.assertIsNotNone(self.transaction.completed_at)

        db.session.refresh(self.ticket)
        self.assertEqual(self.ticket.status, 'sold')
        self.assertEqual(self.ticket.buyer_id, self.buyer.user_id)
        self.assertIsNotNone(self.ticket.sold_at)

        payout = Payout.query.one()
        self.assertEqual(payout.amount, Decimal('760'))
        self.assertEqual(payout.status, 'pending')
        self.assertEqual(payout.seller_id, self.seller.user_id)

        db.session.refresh(self.buyer)
        db.session.refresh(self.seller)
        self.assertEqual(self.buyer.successful_purchases, 1)
        self.assertEqual(self.buyer.total_transactions, 1)
        self.assertEqual(self.seller.successful_sales, 1)
        self.assertEqual(self.seller.total_transactions, 1)

        titles = {n.title for n in Notification.query.all()}
        self.assertEqual(titles, {'Ticket Sold!', 'Purchase Successful!'})

    def test_bad_signature_changes_nothing(self):
        resp = self.verify(signature='0' * 64)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error_code'], 'INVALID_SIGNATURE')

        db.session.refresh(self.transaction)
        db.session.refresh(self.ticket)
        self.assertEqual(self.transaction.status, 'pending')
        self.assertEqual(self.ticket.status, 'pending_purchase')
        self.assertEqual(Payout.query.count(), 0)

    def test_replay_is_a_no_op(self):
        self.verify()
        resp = self.verify()
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.get_json()['already_settled'])

        self.assertEqual(Payout.query.count(), 1)
        db.session.refresh(self.buyer)
        self.assertEqual(self.buyer.successful_purchases, 1)
        self.assertEqual(Notification.query.count(), 2)

    def test_different_payment_id_after_settlement_is_still_one_payout(self):
        self.verify(payment_id='pay_FIRST')
        resp = self.verify(payment_id='pay_SECOND')
        self.assertTrue(resp.get_json()['already_settled'])
        self.assertEqual(Payout.query.count(), 1)
        db.session.refresh(self.transaction)
        self.assertEqual(self.transaction.gateway_payment_id, 'pay_FIRST')

    def test_other_user_cannot_settle(self):
        stranger = self.make_user('stranger@example.com')
        resp = self.verify(user=stranger)
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.get_json()['error_code'], 'TRANSACTION_INCONSISTENT')
        db.session.refresh(self.transaction)
        self.assertEqual(self.transaction.status, 'pending')

    def test_ticket_id_must_match(self):
        other = self.make_ticket(pnr='OTHER1')
        resp = self.verify(ticket_id=str(other.id))
        self.assertEqual(resp.status_code, 400)
        db.session.refresh(self.transaction)
        self.assertEqual(self.transaction.status, 'pending')

    def test_ticket_id_matching_is_accepted(self):
        resp = self.verify(ticket_id=str(self.ticket.id))
        self.assertEqual(resp.status_code, 200)

    def test_missing_fields(self):
        resp = self.post_json('/api/payments/razorpay/verify', {'razorpay_order_id': 'order_ABC123'}, user=self.buyer)
        self.assertEqual(resp.status_code, 400)


class TestSettlePayment(BaseTestCase):
    def setUp(self):
        super().setUp()
        self.ticket = self.make_ticket()
        self.transaction = self.make_pending_transaction(self.ticket, order_id='order_SVC1')

    def test_unknown_order_is_inconsistent(self):
        with self.assertRaises(InconsistencyError), self.assertLogs(settlement_service.logger, 'ERROR') as logs:
            settlement_service.settle_payment('order_UNKNOWN', 'pay_1')
        self.assertIn('RECONCILE', logs.output[0])

    def test_failed_transaction_is_not_settled(self):
        settlement_service.fail_transaction(self.transaction, 'payment_failed')
        with self.assertRaises(InconsistencyError):
            settlement_service.settle_payment('order_SVC1', 'pay_late')
        db.session.refresh(self.ticket)
        self.assertEqual(self.ticket.status, 'available')
        self.assertEqual(Payout.query.count(), 0)

    def test_confirmation_email_is_sent_after_commit(self):
        with mock.patch('ticket_resale.services.settlement_service.email_service.send_email') as send_email:
            settlement_service.settle_payment('order_SVC1', 'pay_1')
        send_email.assert_called_once()
        self.assertEqual(send_email.call_args.args[0], 'buyer@example.com')
        self.assertEqual(send_email.call_args.kwargs['template'], 'ticket_confirmation')
        self.assertEqual(send_email.call_args.kwargs['template_data']['pnrNumber'], 'PNR123456')

    def test_mark_payment_failed_releases_ticket(self):
        transaction = settlement_service.mark_payment_failed('order_SVC1')
        self.assertEqual(transaction.status, 'failed')
        db.session.refresh(self.ticket)
        self.assertEqual(self.ticket.status, 'available')
        self.assertEqual(Notification.query.one().title, 'Payment Failed')

    def test_mark_payment_failed_after_settlement_changes_nothing(self):
        settlement_service.settle_payment('order_SVC1', 'pay_1')
        transaction = settlement_service.mark_payment_failed('order_SVC1')
        self.assertEqual(transaction.status, 'completed')
        db.session.refresh(self.ticket)
        self.assertEqual(self.ticket.status, 'sold')

    def test_mark_payment_failed_unknown_order(self):
        self.assertIsNone(settlement_service.mark_payment_failed('order_NOPE'))

    def test_failed_attempt_keeps_purchase_open(self):
        transaction = settlement_service.record_failed_attempt('order_SVC1', 'pay_declined')
        self.assertEqual(transaction.status, 'pending')
        self.assertEqual(transaction.escrow_status, 'held')
        db.session.refresh(self.ticket)
        self.assertEqual(self.ticket.status, 'pending_purchase')
        self.assertEqual(Notification.query.one().title, 'Payment Attempt Failed')

        settlement_service.settle_payment('order_SVC1', 'pay_retry')
        db.session.refresh(self.ticket)
        self.assertEqual(self.ticket.status, 'sold')
        self.assertEqual(Payout.query.count(), 1)

    def test_failed_attempt_after_settlement_is_ignored(self):
        settlement_service.settle_payment('order_SVC1', 'pay_1')
        transaction = settlement_service.record_failed_attempt('order_SVC1', 'pay_old')
        self.assertEqual(transaction.status, 'completed')
        self.assertNotIn('Payment Attempt Failed', {n.title for n in Notification.query.all()})

    def test_failed_attempt_unknown_order(self):
        self.assertIsNone(settlement_service.record_failed_attempt('order_NOPE'))


class TestStripeConfirm(BaseTestCase):
    def setUp(self):
        super().setUp()
        self.ticket = self.make_ticket()
        self.transaction = self.make_pending_transaction(self.ticket, order_id='pi_123', gateway='stripe')

    @mock.patch('stripe.PaymentIntent.retrieve')
    def test_confirms_succeeded_intent(self, retrieve):
        retrieve.return_value = stripe_object(
            stripe.PaymentIntent, id='pi_123', object='payment_intent', status='succeeded', latest_charge='ch_1'
        )
        resp = self.post_json('/api/payments/stripe/confirm', {'payment_intent_id': 'pi_123'}, user=self.buyer)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()['payment_id'], 'ch_1')
        db.session.refresh(self.ticket)
        self.assertEqual(self.ticket.status, 'sold')

    @mock.patch('stripe.PaymentIntent.retrieve')
    def test_unpaid_intent_is_rejected(self, retrieve):
        retrieve.return_value = stripe_object(
            stripe.PaymentIntent, id='pi_123', object='payment_intent', status='requires_payment_method'
        )
        resp = self.post_json('/api/payments/stripe/confirm', {'payment_intent_id': 'pi_123'}, user=self.buyer)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error_code'], 'PAYMENT_NOT_COMPLETED')
        db.session.refresh(self.transaction)
        self.assertEqual(self.transaction.status, 'pending')


if __name__ == '__main__':
    unittest.main()
