"""
Default healthcare advertising rule set.

Rules without phrases or patterns are documentation-only: the scanner skips
them and the semantic reviewer receives their descriptions as policy notes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from copy_compliance.compliance.rules import Rule, RuleSnapshot, RuleStore

SEED_RULE_RECORDS: Tuple[Dict[str, Any], ...] = (
    # FDA
    {
        "category": "regulatory-claims",
        "name": "Off-label TRT claims",
        "severity": "critical",
        "banned_phrases": [
            "anti-aging cure",
            "reverses aging",
            "weight loss treatment",
            "muscle building therapy",
            "energy cure",
        ],
        "description": (
            "TRT is FDA-approved only for clinically diagnosed hypogonadism. Marketing for anti-aging, "
            "weight loss, muscle building, or energy as primary indications is off-label."
        ),
    },
    {
        "category": "regulatory-claims",
        "name": "Cure language",
        "severity": "critical",
        "banned_phrases": ["cure", "cures", "curing", "permanent fix", "eliminates", "eradicates"],
        "description": "Cannot claim any treatment cures a condition.",
    },
    {
        "category": "regulatory-claims",
        "name": "Off-label HRT claims",
        "severity": "critical",
        "banned_phrases": ["menopause cure", "stops menopause", "reverses menopause"],
        "description": "HRT treats symptoms but does not cure or reverse menopause.",
    },
    # FTC
    {
        "category": "regulatory-claims",
        "name": "Guaranteed outcomes",
        "severity": "critical",
        "banned_phrases": ["guaranteed results", "100% effective", "guaranteed", "proven results", "clinically proven"],
        "banned_patterns": [r"guarantee[ds]?\s+\w+"],
        "description": "Cannot guarantee treatment outcomes.",
    },
    {
        "category": "disclosure",
        "name": "Missing results disclaimer",
        "severity": "warning",
        "required_disclaimers": ["Individual results may vary."],
        "description": 'Any testimonial or outcome reference must include "Individual results may vary."',
    },
    {
        "category": "regulatory-claims",
        "name": "Unsubstantiated claims",
        "severity": "critical",
        "banned_phrases": ["everyone sees results", "all patients", "no one fails", "always works"],
        "description": "Cannot make absolute claims about treatment effectiveness without evidence.",
    },
    # HIPAA
    {
        "category": "data-privacy",
        "name": "Patient data references",
        "severity": "critical",
        "banned_phrases": [
            "your diagnosis",
            "your condition",
            "your test results",
            "your bloodwork showed",
            "your medical records",
        ],
        "description": "Cannot reference or imply knowledge of individual patient health data in advertising.",
    },
    # Meta platform policy
    {
        "category": "platform-policy",
        "name": "Personal health targeting",
        "severity": "critical",
        "description": "Cannot target ads based on health conditions. Use broad interest targeting only.",
    },
    {
        "category": "platform-policy",
        "name": "Conversion optimization restriction",
        "severity": "critical",
        "description": (
            "Health category advertisers cannot optimize for Purchase, AddToCart, or custom conversion "
            "events. Use Link Clicks or Landing Page Views."
        ),
    },
    # General
    {
        "category": "urgency-tactics",
        "name": "No urgency/scarcity",
        "severity": "warning",
        "banned_phrases": [
            "limited time",
            "act now",
            "don't miss out",
            "last chance",
            "expires soon",
            "hurry",
            "urgent",
        ],
        "banned_patterns": [r"only \d+ spots"],
        "description": "Urgency/scarcity tactics erode trust in healthcare advertising.",
    },
    {
        "category": "pricing",
        "name": "No price in ads",
        "severity": "warning",
        "banned_phrases": [
            "$",
            "starting at",
            "as low as",
            "affordable",
            "cheap",
            "discount",
            "free treatment",
            "special price",
        ],
        "description": "Pricing should be discussed in consultation, not in ad copy.",
    },
    {
        "category": "generic",
        "name": "AI face prohibition",
        "severity": "critical",
        "description": "Never use AI-generated faces for doctors or patients. Only real clinic-provided photos.",
    },
    {
        "category": "disclosure",
        "name": "No before/after without disclaimer",
        "severity": "warning",
        "banned_phrases": ["before and after", "transformed", "complete transformation"],
        "required_disclaimers": ["Individual results may vary."],
        "description": 'Before/after references require "Individual results may vary" disclaimer.',
    },
    {
        "category": "disclosure",
        "name": "Testimonial requirements",
        "severity": "warning",
        "description": "Testimonials must represent typical results or disclose atypical nature.",
    },
)


def seed_rules() -> List[Rule]:
    return [Rule.from_dict(record) for record in SEED_RULE_RECORDS]


def seed_rule_store(store: RuleStore) -> RuleSnapshot:
    """Upsert the default rules; running it twice leaves one copy of each."""
    return store.upsert_many(seed_rules())


__all__ = ["SEED_RULE_RECORDS", "seed_rule_store", "seed_rules"]
