"""
Tests for raw metric extraction from prefi and PLAID documents.
"""

import math
import unittest
from datetime import datetime, timedelta

from underwriting_engine import (
    MetricsCalculator,
    clear_cache,
    compute_spending_ratio,
    count_behavioral_waste,
    count_housing_gaps,
    estimate_employment_years,
    get_credit_score,
    get_delinquency_info,
    get_dti,
    is_retired,
    is_self_employed,
)
from underwriting_engine.scoring.feature_builder import get_identity, get_static_annual_income

AS_OF = "2025-01-01"


def plaid_with(transactions):
    return {"items": [{"accounts": [{
        "account_id": "acc-1",
        "name": "Current Account",
        "transactions": transactions,
    }]}]}


def monthly_rent(count, start=datetime(2024, 1, 1)):
    return [
        {"date": (start + timedelta(days=30 * i)).strftime("%Y-%m-%d"), "amount": 900,
         "category": ["Rent"], "name": "LANDLORD"}
        for i in range(count)
    ]


class TestBureauMetrics(unittest.TestCase):
    """Test prefi extractors."""

    def setUp(self):
        clear_cache()

    def test_credit_score_takes_highest_offer(self):
        prefi = {"Offers": [{"Score": "700"}, {"Score": 810}, {"Score": "n/a"}, {}]}
        self.assertEqual(get_credit_score(prefi), 810)

    def test_credit_score_ignores_out_of_range_offers(self):
        prefi = {"Offers": [{"Score": 10 ** 400}, {"Score": "700"}]}
        self.assertEqual(get_credit_score(prefi), 700)

    def test_credit_score_keeps_fractions(self):
        self.assertEqual(get_credit_score({"Offers": [{"Score": "712.5"}]}), 712.5)

    def test_credit_score_defaults_to_zero(self):
        self.assertEqual(get_credit_score({}), 0)
        self.assertEqual(get_credit_score({"Offers": "bad"}), 0)

    def test_dti(self):
        self.assertEqual(get_dti({"DataEnhance": {"DebtToIncome": "0.31"}}), 0.31)
        self.assertEqual(get_dti({"DataEnhance": {}}), 0.0)

    def test_static_income_and_identity(self):
        prefi = {"DataPerfection": {
            "Name": {"Full": "Jane Doe"},
            "Emails": ["jane@example.com"],
            "Phones": ["5551234"],
            "Income": {"Personal": 48000},
        }}

        self.assertEqual(get_static_annual_income(prefi), 48000)
        identity = get_identity(prefi)
        self.assertEqual(identity.name, "Jane Doe")
        self.assertEqual(identity.emails, ["jane@example.com"])
        self.assertEqual(identity.phones, ["5551234"])

    def test_identity_defaults(self):
        identity = get_identity({"Offers": []})
        self.assertEqual((identity.name, identity.emails, identity.phones), ("", [], []))


class TestDelinquency(unittest.TestCase):
    """Test late and major delinquency detection."""

    def setUp(self):
        clear_cache()

    def test_charge_off_is_major_and_recent(self):
        plaid = plaid_with([
            {"date": "2024-06-01", "amount": 50, "original_description": "CHARGE OFF AUTO LOAN"},
        ])
        info = get_delinquency_info(plaid, as_of=AS_OF)

        self.assertTrue(info.has_major_delinquency)
        self.assertTrue(info.one_major_delinquency)
        self.assertEqual(info.late_count_last_2_years, 1)
        self.assertAlmostEqual(info.years_since_last_late, 214 / 365.25)

    def test_late_fee_by_category_or_merchant(self):
        plaid = plaid_with([
            {"date": "2024-10-01", "amount": 25, "category": ["Bank Fees", "Overdraft"]},
            {"date": "2024-11-01", "amount": 15, "merchant_name": "Card Co Late Fee"},
        ])
        info = get_delinquency_info(plaid, as_of=AS_OF)

        self.assertFalse(info.has_major_delinquency)
        self.assertEqual(info.late_count_last_2_years, 2)
        self.assertFalse(info.multiple_recent_lates)

    def test_late_and_major_counted_twice(self):
        plaid = plaid_with([
            {"date": "2024-10-01", "amount": 25, "category": ["Bank Fees"],
             "original_description": "Bankruptcy filing fee"},
        ])
        self.assertEqual(get_delinquency_info(plaid, as_of=AS_OF).late_count_last_2_years, 2)

    def test_old_lates_outside_window(self):
        plaid = plaid_with([{"date": "2015-01-01", "amount": 25, "category": ["Bank Fees"]}])
        info = get_delinquency_info(plaid, as_of=AS_OF)

        self.assertEqual(info.late_count_last_2_years, 0)
        self.assertGreater(info.years_since_last_late, 9)

    def test_no_lates(self):
        info = get_delinquency_info(plaid_with([]), as_of=AS_OF)

        self.assertTrue(math.isinf(info.years_since_last_late))
        self.assertEqual(info.late_count_last_2_years, 0)

    def test_reference_date_changes_result(self):
        plaid = plaid_with([{"date": "2022-06-01", "amount": 25, "category": ["Bank Fees"]}])

        self.assertEqual(get_delinquency_info(plaid, as_of="2024-01-01").late_count_last_2_years, 1)
        self.assertEqual(get_delinquency_info(plaid, as_of="2025-01-01").late_count_last_2_years, 0)

    def test_invalid_reference_date(self):
        with self.assertRaises(ValueError):
            get_delinquency_info(plaid_with([]), as_of="someday")


class TestEmployment(unittest.TestCase):
    """Test tenure, self-employment and retirement signals."""

    def setUp(self):
        clear_cache()

    def test_payroll_span(self):
        plaid = plaid_with([
            {"date": "2020-01-01", "amount": -2000, "category": ["Transfer", "Payroll"]},
            {"date": "2024-06-01", "amount": -2000,
             "credit_category": {"primary": "INCOME", "detailed": "INCOME_SALARY"}},
        ])
        self.assertAlmostEqual(estimate_employment_years(plaid), 1613 / 365.25)

    def test_single_payroll_is_zero(self):
        plaid = plaid_with([{"date": "2020-01-01", "amount": -2000, "category": ["Payroll"]}])
        self.assertEqual(estimate_employment_years(plaid), 0.0)

    def test_self_employed(self):
        plaid = plaid_with([{
            "date": "2024-01-01", "amount": -900,
            "credit_category": {"primary": "INCOME", "detailed": "INCOME_OTHER"},
        }])
        self.assertTrue(is_self_employed(plaid))

    def test_payroll_income_is_not_self_employed(self):
        plaid = plaid_with([{
            "date": "2024-01-01", "amount": -900, "category": ["Payroll"],
            "credit_category": {"primary": "INCOME"},
        }])
        self.assertFalse(is_self_employed(plaid))

    def test_retired(self):
        prefi = {"DataPerfection": {"Assets": {"Retirement": 50000}}}

        self.assertTrue(is_retired(prefi, plaid_with([])))
        self.assertFalse(is_retired({}, plaid_with([])))
        income = plaid_with([{"date": "2024-01-01", "amount": -500,
                              "credit_category": {"primary": "INCOME"}}])
        self.assertFalse(is_retired(prefi, income))


class TestSpendingMetrics(unittest.TestCase):
    """Test housing, discretionary spend and behavioural waste."""

    def setUp(self):
        clear_cache()

    def test_no_housing_signal(self):
        self.assertIsNone(count_housing_gaps(plaid_with([])))

    def test_regular_rent_has_no_gaps(self):
        self.assertEqual(count_housing_gaps(plaid_with(monthly_rent(12))), 0)

    def test_missed_rent_counts_gap(self):
        payments = monthly_rent(6)
        del payments[3]
        self.assertEqual(count_housing_gaps(plaid_with(payments)), 1)

    def test_spending_ratio_is_amount_weighted(self):
        plaid = plaid_with([
            {"date": "2024-01-02", "amount": 300, "credit_category": {"primary": "TRAVEL"}},
            {"date": "2024-01-03", "amount": 700, "credit_category": {"primary": "GROCERIES"}},
            {"date": "2024-01-04", "amount": -5000, "name": "SALARY"},
        ])
        self.assertAlmostEqual(compute_spending_ratio(plaid), 0.3)

    def test_spending_ratio_without_outflows(self):
        self.assertEqual(compute_spending_ratio(plaid_with([])), 0.0)

    def test_behavioral_waste(self):
        salary = [
            {"date": d, "amount": -1000, "name": "SALARY"}
            for d in ("2024-01-01", "2024-01-31", "2024-03-01", "2024-03-31")
        ]
        spend = [
            {"date": "2024-02-10", "amount": 250, "name": "Electronics"},
            {"date": "2024-02-11", "amount": 500, "name": "Holiday"},
            {"date": "2024-02-12", "amount": 150, "name": "Dinner"},
        ]
        self.assertEqual(count_behavioral_waste(plaid_with(salary + spend)), 2)

    def test_behavioral_waste_without_income(self):
        plaid = plaid_with([{"date": "2024-02-10", "amount": 2500, "name": "Electronics"}])
        self.assertEqual(count_behavioral_waste(plaid), 0)


class TestMetricsCalculator(unittest.TestCase):
    """Test full metric assembly."""

    def setUp(self):
        clear_cache()

    def test_monthly_income_uses_larger_source(self):
        prefi = {"DataPerfection": {"Income": {"Personal": 36000}}}
        plaid = plaid_with([
            {"date": d, "amount": -2000, "name": "SALARY"}
            for d in ("2024-01-01", "2024-01-31", "2024-03-01")
        ])
        metrics = MetricsCalculator(as_of=AS_OF).calculate_all_metrics(prefi, plaid)

        self.assertAlmostEqual(metrics.heuristic_monthly_income, 2000)
        self.assertEqual(metrics.static_annual_income, 36000)
        self.assertAlmostEqual(metrics.monthly_income, 3000)
        self.assertAlmostEqual(metrics.simple_monthly_income, 250)
        self.assertEqual(len(metrics.recurring_patterns), 1)


if __name__ == "__main__":
    unittest.main()
