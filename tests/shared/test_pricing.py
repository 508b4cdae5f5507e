"""Tests for the pricing calculator."""

from shared.pricing import DEFAULT_RULES, PricingRules, shipping, summarize, tax, total


class TestShipping:
    def test_free_at_threshold(self):
        assert shipping(100.0) == 0.0

    def test_free_above_threshold(self):
        assert shipping(250.0) == 0.0

    def test_flat_fee_below_threshold(self):
        assert shipping(99.99) == 9.99

    def test_nothing_to_ship_for_empty_cart(self):
        assert shipping(0.0) == 0.0


class TestTax:
    def test_flat_rate(self):
        assert tax(120.0) == 9.6

    def test_rounds_half_up_to_cents(self):
        # 1.00 * 0.085 = 0.085 -> 0.09
        assert tax(1.0, PricingRules(tax_rate=0.085)) == 0.09


class TestTotal:
    def test_total_above_threshold(self):
        assert total(120.0) == 129.6

    def test_total_below_threshold(self):
        assert total(40.0) == 53.19

    def test_summary_matches_parts(self):
        breakdown = summarize(40.0)
        assert breakdown.subtotal == 40.0
        assert breakdown.shipping == 9.99
        assert breakdown.tax == 3.2
        assert breakdown.total == 53.19

    def test_empty_cart_costs_nothing(self):
        assert summarize(0.0).total == 0.0


class TestPricingRules:
    def test_defaults(self):
        assert DEFAULT_RULES.free_shipping_threshold == 100.0
        assert DEFAULT_RULES.flat_shipping_fee == 9.99
        assert DEFAULT_RULES.tax_rate == 0.08

    def test_custom_rules(self):
        rules = PricingRules(free_shipping_threshold=50.0, flat_shipping_fee=5.0, tax_rate=0.1)
        breakdown = summarize(40.0, rules)
        assert breakdown.shipping == 5.0
        assert breakdown.tax == 4.0
        assert breakdown.total == 49.0

    def test_from_settings(self):
        from shared.config import Settings

        rules = PricingRules.from_settings(Settings(tax_rate=0.085, configure_logging=False))
        assert rules.tax_rate == 0.085
