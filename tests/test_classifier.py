"""Tests for threshold classification and its incident side effect."""

import unittest

from sysdiag.core import Classifier, Direction, ErrorLog, Severity, Thresholds, Tier

LOWER = Thresholds(critical=10, warning=20, direction=Direction.LOWER_IS_WORSE)
HIGHER = Thresholds(critical=90, warning=75, direction=Direction.HIGHER_IS_WORSE)


class TestBoundaries(unittest.TestCase):

    def setUp(self):
        self.classifier = Classifier()

    def tier(self, value, thresholds):
        return self.classifier.classify(value, thresholds).tier

    def test_lower_is_worse_exact_warning_boundary_is_good(self):
        self.assertIs(self.tier(20, LOWER), Tier.GOOD)

    def test_lower_is_worse_just_below_warning(self):
        self.assertIs(self.tier(19.999, LOWER), Tier.WARNING)

    def test_lower_is_worse_exact_critical_boundary_is_warning(self):
        self.assertIs(self.tier(10, LOWER), Tier.WARNING)

    def test_lower_is_worse_below_critical(self):
        self.assertIs(self.tier(9.99, LOWER), Tier.CRITICAL)
        self.assertIs(self.tier(0, LOWER), Tier.CRITICAL)

    def test_higher_is_worse(self):
        self.assertIs(self.tier(50, HIGHER), Tier.GOOD)
        self.assertIs(self.tier(75, HIGHER), Tier.GOOD)
        self.assertIs(self.tier(75.01, HIGHER), Tier.WARNING)
        self.assertIs(self.tier(90, HIGHER), Tier.WARNING)
        self.assertIs(self.tier(90.5, HIGHER), Tier.CRITICAL)

    def test_threshold_recorded_on_fact(self):
        fact = self.classifier.classify(15, LOWER, subject="Disk C: free space", unit="%")
        self.assertEqual(fact.threshold, 20)
        self.assertIsNone(self.classifier.classify(50, LOWER).threshold)

    def test_direction_accepts_string_value(self):
        t = Thresholds(critical=10, warning=20, direction="lower_is_worse")
        self.assertIs(t.direction, Direction.LOWER_IS_WORSE)


class TestIncidents(unittest.TestCase):

    def setUp(self):
        self.log = ErrorLog()
        self.classifier = Classifier(self.log)

    def test_disk_critical_scenario(self):
        fact = self.classifier.classify(7, LOWER, subject="Disk C: free space", unit="%")
        self.assertIs(fact.tier, Tier.CRITICAL)
        self.assertEqual(self.log.count(), 1)
        inc = self.log.all()[0]
        self.assertIs(inc.severity, Severity.CRITICAL)
        self.assertIn("7", inc.message)
        self.assertIn("Disk C: free space", inc.message)

    def test_warning_incident(self):
        self.classifier.classify(80, HIGHER, subject="CPU load", unit="%")
        inc = self.log.all()[0]
        self.assertIs(inc.severity, Severity.WARNING)
        self.assertIn("CPU load", inc.message)
        self.assertIn("80", inc.message)

    def test_good_records_nothing(self):
        self.classifier.classify(30, HIGHER, subject="CPU load")
        self.assertEqual(self.log.count(), 0)

    def test_label_mentions_value(self):
        fact = self.classifier.classify(42.4, HIGHER, subject="Memory usage", unit="%")
        self.assertIn("Memory usage", fact.label)
        self.assertIn("42.4%", fact.label)


class TestFlags(unittest.TestCase):

    def setUp(self):
        self.log = ErrorLog()
        self.classifier = Classifier(self.log)

    def test_expected_flag_is_good(self):
        fact = self.classifier.classify_flag(True, "Firewall")
        self.assertIs(fact.tier, Tier.GOOD)
        self.assertEqual(self.log.count(), 0)

    def test_disabled_flag_is_critical(self):
        fact = self.classifier.classify_flag(False, "Antivirus")
        self.assertIs(fact.tier, Tier.CRITICAL)
        self.assertIn("disabled", fact.label)
        self.assertIs(self.log.all()[0].severity, Severity.CRITICAL)

    def test_flag_tier_configurable(self):
        fact = self.classifier.classify_flag(False, "Definitions", tier=Tier.WARNING, detail="7 days old")
        self.assertIs(fact.tier, Tier.WARNING)
        self.assertIn("7 days old", fact.label)

    def test_non_boolean_flag_rejected(self):
        with self.assertRaises(ValueError):
            self.classifier.classify_flag(None, "Firewall")


class TestMalformedInput(unittest.TestCase):

    def test_non_numeric_values_rejected(self):
        classifier = Classifier(ErrorLog())
        for bad in (None, float("nan"), True, "15", [1]):
            with self.assertRaises(ValueError):
                classifier.classify(bad, LOWER)

    def test_rejection_does_not_log(self):
        log = ErrorLog()
        with self.assertRaises(ValueError):
            Classifier(log).classify(None, LOWER)
        self.assertEqual(log.count(), 0)

    def test_inverted_thresholds_rejected(self):
        with self.assertRaises(ValueError):
            Thresholds(critical=20, warning=10, direction=Direction.LOWER_IS_WORSE)
        with self.assertRaises(ValueError):
            Thresholds(critical=70, warning=90, direction=Direction.HIGHER_IS_WORSE)

    def test_non_numeric_thresholds_rejected(self):
        with self.assertRaises(ValueError):
            Thresholds(critical="high", warning=10)

    def test_from_config(self):
        t = Thresholds.from_config({"critical": 5, "warning": 15}, Direction.LOWER_IS_WORSE)
        self.assertEqual((t.critical, t.warning), (5, 15))


if __name__ == "__main__":
    unittest.main()
