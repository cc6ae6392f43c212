"""
Unit tests for the duplicate matching rules and rule engines.

Rules only read attributes, so unsaved model instances are enough here.
"""
import pytest

from crm.core.models import Customer, CustomerType, Lead
from crm.dedup.rules import (
    EmailRule,
    LeadNameRule,
    MatchRuleEngine,
    NameAddressFuzzyRule,
    PhoneRule,
    TaxIdRule,
    customer_rule_engine,
    lead_rule_engine,
)


def customer(record_id, **kwargs):
    kwargs.setdefault("name", f"Customer {record_id}")
    kwargs.setdefault("type", CustomerType.INDIVIDUAL)
    return Customer(id=record_id, tenant_id="t1", **kwargs)


def lead(record_id, **kwargs):
    return Lead(id=record_id, tenant_id="t1", title="Enquiry", **kwargs)


class TestEmailRule:
    """Exact email equality."""

    @pytest.mark.unit
    def test_matches_same_email(self):
        subject = customer("a", email="a@x.com")
        hits = EmailRule().evaluate(subject, [subject, customer("b", email="a@x.com")])

        assert len(hits) == 1
        assert hits[0].record_id == "b"
        assert hits[0].match_rule == "Email Match"
        assert hits[0].confidence_score == 90
        assert hits[0].matched_fields == ["Email"]

    @pytest.mark.unit
    def test_case_sensitive(self):
        subject = customer("a", email="a@x.com")
        assert EmailRule().evaluate(subject, [customer("b", email="A@X.com")]) == []

    @pytest.mark.unit
    @pytest.mark.parametrize("blank", [None, "", "   "])
    def test_blank_subject_email_skips_rule(self, blank):
        """Two blank emails are not a match."""
        subject = customer("a", email=blank)
        assert EmailRule().evaluate(subject, [customer("b", email=blank)]) == []

    @pytest.mark.unit
    def test_never_matches_itself(self):
        subject = customer("a", email="a@x.com")
        assert EmailRule().evaluate(subject, [subject]) == []


class TestPhoneRule:
    """Phone equality after normalization."""

    @pytest.mark.unit
    def test_formatting_ignored(self):
        subject = customer("a", phone="(555) 123-4567")
        hits = PhoneRule().evaluate(subject, [customer("b", phone="555-123-4567")])

        assert [h.record_id for h in hits] == ["b"]
        assert hits[0].confidence_score == 80
        assert hits[0].matched_fields == ["Phone"]

    @pytest.mark.unit
    def test_candidate_without_phone_skipped(self):
        subject = customer("a", phone="555-123-4567")
        assert PhoneRule().evaluate(subject, [customer("b"), customer("c", phone=" ")]) == []

    @pytest.mark.unit
    def test_punctuation_only_phone_matches_nothing(self):
        subject = customer("a", phone="--")
        assert PhoneRule().evaluate(subject, [customer("b", phone="()")]) == []

    @pytest.mark.unit
    def test_different_numbers(self):
        subject = customer("a", phone="555-123-4567")
        assert PhoneRule().evaluate(subject, [customer("b", phone="555-123-4568")]) == []


class TestTaxIdRule:
    """Tax id match between business customers."""

    @pytest.mark.unit
    def test_business_customers_with_same_tax_id(self):
        subject = customer("a", type=CustomerType.BUSINESS, tax_id="T1")
        hits = TaxIdRule().evaluate(
            subject, [customer("b", type=CustomerType.BUSINESS, tax_id="T1")]
        )

        assert len(hits) == 1
        assert hits[0].confidence_score == 95
        assert hits[0].match_rule == "Tax ID Match"
        assert hits[0].matched_fields == ["TaxId"]

    @pytest.mark.unit
    def test_individual_subject_skipped(self):
        subject = customer("a", type=CustomerType.INDIVIDUAL, tax_id="T1")
        candidates = [customer("b", type=CustomerType.BUSINESS, tax_id="T1")]
        assert TaxIdRule().evaluate(subject, candidates) == []

    @pytest.mark.unit
    def test_individual_candidate_skipped(self):
        subject = customer("a", type=CustomerType.BUSINESS, tax_id="T1")
        candidates = [customer("b", type=CustomerType.INDIVIDUAL, tax_id="T1")]
        assert TaxIdRule().evaluate(subject, candidates) == []

    @pytest.mark.unit
    def test_blank_tax_id_skipped(self):
        subject = customer("a", type=CustomerType.BUSINESS, tax_id="")
        candidates = [customer("b", type=CustomerType.BUSINESS, tax_id="")]
        assert TaxIdRule().evaluate(subject, candidates) == []


class TestNameAddressFuzzyRule:
    """Fuzzy name + address match."""

    @pytest.mark.unit
    def test_near_identical_name_and_address(self):
        subject = customer("a", name="Acme Corp", address_line1="1 Main St")
        hits = NameAddressFuzzyRule().evaluate(
            subject, [customer("b", name="Acme Corp.", address_line1="1 Main St")]
        )

        assert len(hits) == 1
        assert hits[0].confidence_score == 70
        assert hits[0].matched_fields == ["Name", "Address"]
        assert hits[0].match_rule == "Name + Address Fuzzy Match"

    @pytest.mark.unit
    def test_name_below_threshold(self):
        subject = customer("a", name="Acme Corp", address_line1="1 Main St")
        candidates = [customer("b", name="Acme Corporation", address_line1="1 Main St")]
        assert NameAddressFuzzyRule().evaluate(subject, candidates) == []

    @pytest.mark.unit
    def test_address_below_threshold(self):
        subject = customer("a", name="Acme Corp", address_line1="1 Main St")
        candidates = [customer("b", name="Acme Corp", address_line1="99 Harbour Rd")]
        assert NameAddressFuzzyRule().evaluate(subject, candidates) == []

    @pytest.mark.unit
    def test_missing_address_skips_rule(self):
        subject = customer("a", name="Acme Corp")
        assert NameAddressFuzzyRule().evaluate(subject, [customer("b", name="Acme Corp")]) == []

    @pytest.mark.unit
    def test_candidate_missing_address_skipped(self):
        subject = customer("a", name="Acme Corp", address_line1="1 Main St")
        assert NameAddressFuzzyRule().evaluate(subject, [customer("b", name="Acme Corp")]) == []

    @pytest.mark.unit
    def test_custom_thresholds(self):
        """A looser name threshold accepts the 0.5625 'Corporation' variant."""
        rule = NameAddressFuzzyRule(name_threshold=0.5, address_threshold=0.85)
        subject = customer("a", name="Acme Corp", address_line1="1 Main St")
        candidates = [customer("b", name="Acme Corporation", address_line1="1 Main St")]
        assert len(rule.evaluate(subject, candidates)) == 1


class TestLeadNameRule:
    """Lead full name with company veto."""

    @pytest.mark.unit
    def test_name_typo_same_company(self):
        subject = lead("a", first_name="John", last_name="Smith", company_name="Globex")
        hits = LeadNameRule().evaluate(
            subject, [lead("b", first_name="Jon", last_name="Smith", company_name="Globex")]
        )

        assert len(hits) == 1
        assert hits[0].match_rule == "Name Match"
        assert hits[0].confidence_score == 75
        assert hits[0].matched_fields == ["FirstName", "LastName", "Company"]

    @pytest.mark.unit
    def test_company_mismatch_vetoes(self):
        subject = lead("a", first_name="John", last_name="Smith", company_name="Globex")
        candidates = [lead("b", first_name="John", last_name="Smith", company_name="Initech")]
        assert LeadNameRule().evaluate(subject, candidates) == []

    @pytest.mark.unit
    def test_blank_company_on_either_side_passes(self):
        subject = lead("a", first_name="John", last_name="Smith", company_name="Globex")
        candidates = [lead("b", first_name="John", last_name="Smith", company_name=" ")]
        assert len(LeadNameRule().evaluate(subject, candidates)) == 1

        subject = lead("c", first_name="John", last_name="Smith")
        candidates = [lead("d", first_name="John", last_name="Smith", company_name="Globex")]
        assert len(LeadNameRule().evaluate(subject, candidates)) == 1

    @pytest.mark.unit
    def test_subject_missing_last_name_skips_rule(self):
        subject = lead("a", first_name="John")
        assert LeadNameRule().evaluate(subject, [lead("b", first_name="John")]) == []

    @pytest.mark.unit
    def test_candidate_without_name_skipped(self):
        subject = lead("a", first_name="John", last_name="Smith")
        assert LeadNameRule().evaluate(subject, [lead("b", email="x@y.com")]) == []

    @pytest.mark.unit
    def test_different_people(self):
        subject = lead("a", first_name="John", last_name="Smith")
        assert LeadNameRule().evaluate(subject, [lead("b", first_name="Mary", last_name="Jones")]) == []


class TestRuleEngines:
    """Default rule tables and evaluation order."""

    @pytest.mark.unit
    def test_customer_rule_order(self):
        engine = customer_rule_engine()
        assert engine.entity_type == "Customer"
        assert engine.rule_names == [
            "Email Match",
            "Phone Match",
            "Tax ID Match",
            "Name + Address Fuzzy Match",
        ]

    @pytest.mark.unit
    def test_lead_rule_order(self):
        engine = lead_rule_engine()
        assert engine.entity_type == "Lead"
        assert engine.rule_names == ["Email Match", "Phone Match", "Name Match"]

    @pytest.mark.unit
    def test_raw_hits_in_rule_order(self):
        """Each rule contributes its own hit; aggregation happens later."""
        subject = customer("a", type=CustomerType.BUSINESS, phone="555 1234", tax_id="T1")
        other = customer("b", type=CustomerType.BUSINESS, phone="5551234", tax_id="T1")

        hits = customer_rule_engine().evaluate(subject, [subject, other])

        assert [h.match_rule for h in hits] == ["Phone Match", "Tax ID Match"]
        assert {h.record_id for h in hits} == {"b"}

    @pytest.mark.unit
    def test_custom_engine(self):
        engine = MatchRuleEngine("Customer", [EmailRule()])
        subject = customer("a", email="a@x.com", phone="1")
        hits = engine.evaluate(subject, [customer("b", email="a@x.com", phone="1")])
        assert [h.match_rule for h in hits] == ["Email Match"]
