#!/usr/bin/env python3
"""
Unit tests for the packaging materials summary.
"""

import os
import sys
import unittest

# Add the parent directory to the path to access utils
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from utils.packaging_summary import build_packaging_summary, derive_packaging_description


class TestDerivePackagingDescription(unittest.TestCase):

    def test_markers(self):
        self.assertEqual(derive_packaging_description('PALLET-STD'), 'Standard Wood Pallet')
        self.assertEqual(derive_packaging_description('TOTE-9'), 'Standard Plastic Tote')
        self.assertEqual(derive_packaging_description('LID-3'), 'Plastic Lid')
        self.assertEqual(derive_packaging_description('BOX-S'), 'Standard Cardboard Box')
        self.assertEqual(derive_packaging_description('KW16.5X18X24'), 'Standard Cardboard Box')
        self.assertEqual(derive_packaging_description('CARDBOARD'), 'Standard Packaging')
        self.assertEqual(derive_packaging_description(None), 'Standard Packaging')

    def test_first_marker_wins(self):
        self.assertEqual(derive_packaging_description('TOTE-LID'), 'Standard Plastic Tote')
        self.assertEqual(derive_packaging_description('BOX-PALLET'), 'Standard Wood Pallet')


class TestBuildPackagingSummary(unittest.TestCase):

    def test_pallet_scenario(self):
        rows = [
            {'PART': 'PALLET-STD', 'SKIDS': None, 'QTY1': '4'},
            {'PART': 'KWS001', 'SKIDS': '1', 'QTY1': '10'},
        ]
        summary = build_packaging_summary(rows, {'PALLET-STD'})

        self.assertEqual(summary, [
            {'part': 'PALLET-STD', 'description': 'Standard Wood Pallet', 'qty': 4},
            {'part': 'Total', 'description': '', 'qty': 4},
        ])

    def test_groups_in_first_seen_order(self):
        rows = [
            {'PART': 'TOTE-1', 'QTY1': '2'},
            {'PART': 'PALLET-1', 'QTY1': '1', 'DESC_CUMPLE_US': 'Heat treated pallet'},
            {'PART': 'TOTE-1', 'QTY1': '3', 'DESCRIPTION': 'ignored, not the first row'},
            {'PART': 'LID-1', 'QTY1': 'x', 'description': 'Lid'},
        ]
        summary = build_packaging_summary(rows, {'TOTE-1', 'PALLET-1', 'LID-1'})

        self.assertEqual([item['part'] for item in summary], ['TOTE-1', 'PALLET-1', 'LID-1', 'Total'])
        self.assertEqual([item['qty'] for item in summary], [5, 1, 0, 6])
        self.assertEqual(summary[0]['description'], 'Standard Plastic Tote')
        self.assertEqual(summary[1]['description'], 'Heat treated pallet')
        self.assertEqual(summary[2]['description'], 'Lid')

    def test_total_row_always_present(self):
        summary = build_packaging_summary([{'PART': 'KW1', 'SKIDS': '1', 'QTY1': '3'}], set())
        self.assertEqual(summary, [{'part': 'Total', 'description': '', 'qty': 0}])
        self.assertEqual(build_packaging_summary([], set()), [{'part': 'Total', 'description': '', 'qty': 0}])


if __name__ == '__main__':
    unittest.main()
