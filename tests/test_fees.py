import unittest
from decimal import Decimal

from ticket_resale.services.fees import compute_fees, to_minor_units


class TestFees(unittest.TestCase):
    def test_five_percent_of_800(self):
        fee, seller_amount = compute_fees(800, '0.05')
        self.assertEqual(fee, Decimal('40'))
        self.assertEqual(seller_amount, Decimal('760'))

    def test_fee_rounds_half_up_to_whole_rupees(self):
        self.assertEqual(compute_fees(810, '0.05')[0], Decimal('41'))   # 40.5
        self.assertEqual(compute_fees(799, '0.05')[0], Decimal('40'))   # 39.95
        self.assertEqual(compute_fees(789, '0.05')[0], Decimal('39'))   # 39.45

    def test_seller_amount_is_amount_minus_fee(self):
        for amount in ('1', '99.50', '1234.56', '5000'):
            fee, seller_amount = compute_fees(amount, '0.05')
            self.assertEqual(fee + seller_amount, Decimal(amount))

    def test_minor_units(self):
        self.assertEqual(to_minor_units(Decimal('800')), 80000)
        self.assertEqual(to_minor_units(799.99), 79999)
        self.assertEqual(to_minor_units('760.00'), 76000)


if __name__ == '__main__':
    unittest.main()
