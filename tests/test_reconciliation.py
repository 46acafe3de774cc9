import unittest
from datetime import timedelta

from ticket_resale.errors import ValidationError
from ticket_resale.extensions import db
from ticket_resale.services import settlement_service
from ticket_resale.services.common import utcnow
from ticket_resale.services.reconciliation_service import release_stale_purchases
from tests.base import BaseTestCase


class TestReleaseStalePurchases(BaseTestCase):
    def setUp(self):
        super().setUp()
        self.stale_ticket = self.make_ticket(pnr='STALE1')
        self.stale = self.make_pending_transaction(self.stale_ticket, order_id='order_STALE')
        self.stale.created_at = utcnow() - timedelta(hours=2)

        self.fresh_ticket = self.make_ticket(pnr='FRESH1')
        self.fresh = self.make_pending_transaction(self.fresh_ticket, order_id='order_FRESH')
        db.session.commit()

    def test_releases_only_old_pending_purchases(self):
        released = release_stale_purchases(60)
        self.assertEqual(released, [self.stale.id])

        db.session.refresh(self.stale_ticket)
        db.session.refresh(self.fresh_ticket)
        self.assertEqual(self.stale_ticket.status, 'available')
        self.assertEqual(self.fresh_ticket.status, 'pending_purchase')
        db.session.refresh(self.stale)
        self.assertEqual(self.stale.status, 'failed')

    def test_settled_purchases_are_left_alone(self):
        settlement_service.settle_payment('order_STALE', 'pay_1')
        self.assertEqual(release_stale_purchases(60), [])
        db.session.refresh(self.stale_ticket)
        self.assertEqual(self.stale_ticket.status, 'sold')

    def test_age_is_required(self):
        with self.assertRaises(ValidationError):
            release_stale_purchases(0)
        with self.assertRaises(ValidationError):
            release_stale_purchases(None)

    def test_cli_requires_an_age(self):
        result = self.app.test_cli_runner().invoke(args=['release-stale-purchases'])
        self.assertEqual(result.exit_code, 2)
        self.assertIn('--older-than-minutes', result.output)
        db.session.refresh(self.stale_ticket)
        self.assertEqual(self.stale_ticket.status, 'pending_purchase')

    def test_cli_releases(self):
        result = self.app.test_cli_runner().invoke(args=['release-stale-purchases', '--older-than-minutes', '60'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('Released 1 stale purchase(s)', result.output)

    def test_cli_falls_back_to_configured_age(self):
        self.app.config['PENDING_PURCHASE_TTL_MINUTES'] = 30
        result = self.app.test_cli_runner().invoke(args=['release-stale-purchases'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('Released 1 stale purchase(s)', result.output)

    def test_cli_explicit_zero_is_not_replaced_by_configured_age(self):
        self.app.config['PENDING_PURCHASE_TTL_MINUTES'] = 30
        result = self.app.test_cli_runner().invoke(args=['release-stale-purchases', '--older-than-minutes', '0'])
        self.assertEqual(result.exit_code, 2)
        self.assertIn('--older-than-minutes', result.output)
        db.session.refresh(self.stale_ticket)
        self.assertEqual(self.stale_ticket.status, 'pending_purchase')


if __name__ == '__main__':
    unittest.main()
