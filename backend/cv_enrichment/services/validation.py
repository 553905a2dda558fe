"""
Validation Service - sanitizes the aggregated external data before it is
cached or shown to anyone.

- PII (SSN, card numbers, phone numbers, emails, IPs, IBAN-like account
  numbers) found in string values is replaced with [REDACTED].
- Sensitive keywords (password, token, ...) are only flagged.
- Structural checks produce ValidationIssues; a quality score is derived
  from the issues and from which sections are present.

validate() never raises.
"""
import logging
import re
from typing import Any, List

from ..schemas.external_data import (
    EnrichedCVData,
    ValidationIssue,
    ValidationStatus,
)
from ..utils import is_valid_url, parse_date

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

PII_PATTERNS = {
    "ssn": re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    "credit_card": re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"),
    "phone": re.compile(r"(?<![\w+])(\+?\d{1,3}[\s-]?)?\(?\d{3}\)?[\s-]?\d{3}[\s-]?\d{4}\b"),
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    "ip_address": re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"),
    "bank_account": re.compile(r"\b[A-Z]{2}\d{2}[\s-]?[A-Z0-9]{4}[\s-]?\d{7}(?:\d{3})?\b"),
}

SENSITIVE_KEYWORDS = [
    "password", "secret", "token", "api_key", "private_key",
    "confidential", "internal", "proprietary", "classified",
]

# Sections of EnrichedCVData whose string values are scanned and redacted.
# Identity fields (user_id, original_cv_id) and source bookkeeping are left alone.
SANITIZED_SECTIONS = [
    "github",
    "linkedin",
    "web_presence",
    "personal_website",
    "aggregated_skills",
    "aggregated_projects",
    "professional_summary",
]

MAX_PORTFOLIO_PROJECTS = 50
MAX_AGGREGATED_PROJECTS = 20
HIGH_CONTRIBUTION_COUNT = 10000

SEVERITY_PENALTY = {"error": 10, "warning": 5, "info": 1}
SECTION_BONUS = 5


class ValidationService:
    def __init__(self):
        logger.info("[VALIDATION] Validation service initialized")

    def validate(self, data: EnrichedCVData) -> EnrichedCVData:
        """Return a sanitized deep copy of ``data`` with validation_status set."""
        try:
            return self._validate(data)
        except Exception as e:
            logger.error(f"[VALIDATION] Validation failed for user {data.user_id}: {e}")
            fallback = data.model_copy(deep=True)
            fallback.validation_status = ValidationStatus(
                is_valid=False,
                quality_score=0,
                issues=[ValidationIssue(field="*", issue=f"Validation failed: {e}", severity="error")],
            )
            return fallback

    def _validate(self, data: EnrichedCVData) -> EnrichedCVData:
        logger.info(f"[VALIDATION] Starting validation: user={data.user_id}, sources={len(data.sources)}")
        issues: List[ValidationIssue] = []

        if data.github is not None:
            self._check_github(data, issues)
        if data.linkedin is not None:
            self._check_linkedin(data, issues)
        if data.web_presence is not None:
            self._check_web_presence(data, issues)
        if data.personal_website is not None:
            self._check_website(data, issues)

        raw = data.model_dump(mode="python")
        self._check_aggregates(raw, issues)

        has_pii = False
        has_sensitive = False
        for section in SANITIZED_SECTIONS:
            if raw.get(section) is None:
                continue
            has_pii = self._contains_pii(raw[section]) or has_pii
            has_sensitive = self._contains_sensitive(raw[section]) or has_sensitive
            raw[section] = self.redact(raw[section])

        raw["validation_status"] = None
        sanitized = EnrichedCVData.model_validate(raw)
        sanitized.validation_status = ValidationStatus(
            is_valid=not any(i.severity == "error" for i in issues),
            has_personal_info=has_pii,
            has_sensitive_data=has_sensitive,
            quality_score=self.calculate_quality_score(sanitized, issues),
            issues=issues,
        )

        logger.info(
            f"[VALIDATION] Completed: valid={sanitized.validation_status.is_valid}, "
            f"issues={len(issues)}, score={sanitized.validation_status.quality_score}"
        )
        return sanitized

    # ------------------------------------------------------------------
    # Structural checks
    # ------------------------------------------------------------------

    def _check_github(self, data: EnrichedCVData, issues: List[ValidationIssue]):
        github = data.github
        if not github.profile.username:
            issues.append(ValidationIssue(
                field="github.profile.username",
                issue="Missing GitHub username",
                severity="error",
            ))
        if github.stats.total_contributions > HIGH_CONTRIBUTION_COUNT:
            issues.append(ValidationIssue(
                field="github.stats.total_contributions",
                issue="Unusually high contribution count",
                severity="warning",
            ))

    def _check_linkedin(self, data: EnrichedCVData, issues: List[ValidationIssue]):
        linkedin = data.linkedin
        for index, exp in enumerate(linkedin.experience):
            if exp.start_date and parse_date(exp.start_date) is None:
                issues.append(ValidationIssue(
                    field=f"linkedin.experience[{index}].start_date",
                    issue="Invalid date format",
                    severity="warning",
                ))
        if len(set(linkedin.skills)) < len(linkedin.skills):
            issues.append(ValidationIssue(
                field="linkedin.skills",
                issue="Duplicate skills detected",
                severity="info",
            ))

    def _check_web_presence(self, data: EnrichedCVData, issues: List[ValidationIssue]):
        for index, result in enumerate(data.web_presence.search_results):
            if result.url and not is_valid_url(result.url):
                issues.append(ValidationIssue(
                    field=f"web_presence.search_results[{index}].url",
                    issue="Invalid URL format",
                    severity="warning",
                ))

    def _check_website(self, data: EnrichedCVData, issues: List[ValidationIssue]):
        website = data.personal_website
        if not is_valid_url(website.url):
            issues.append(ValidationIssue(
                field="personal_website.url",
                issue="Invalid or missing website URL",
                severity="error",
            ))
        if len(website.portfolio_projects) > MAX_PORTFOLIO_PROJECTS:
            issues.append(ValidationIssue(
                field="personal_website.portfolio_projects",
                issue=f"Too many portfolio projects (max {MAX_PORTFOLIO_PROJECTS})",
                severity="warning",
            ))

    def _check_aggregates(self, raw: dict, issues: List[ValidationIssue]):
        skills = raw.get("aggregated_skills") or []
        unique_skills = list(dict.fromkeys(skills))
        if len(unique_skills) < len(skills):
            raw["aggregated_skills"] = unique_skills
            issues.append(ValidationIssue(
                field="aggregated_skills",
                issue="Duplicate skills removed",
                severity="info",
            ))

        projects = raw.get("aggregated_projects") or []
        if len(projects) > MAX_AGGREGATED_PROJECTS:
            raw["aggregated_projects"] = projects[:MAX_AGGREGATED_PROJECTS]
            issues.append(ValidationIssue(
                field="aggregated_projects",
                issue=f"Projects limited to {MAX_AGGREGATED_PROJECTS}",
                severity="info",
            ))

    # ------------------------------------------------------------------
    # PII / sensitive data
    # ------------------------------------------------------------------

    @staticmethod
    def redact_text(text: str) -> str:
        for pattern in PII_PATTERNS.values():
            text = pattern.sub(REDACTED, text)
        return text

    def redact(self, value: Any) -> Any:
        """Recursively redact PII in every string value of ``value``."""
        if isinstance(value, str):
            if any(p.search(value) for p in PII_PATTERNS.values()):
                return self.redact_text(value)
            return value
        if isinstance(value, dict):
            return {k: self.redact(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.redact(v) for v in value]
        return value

    def _contains_pii(self, value: Any) -> bool:
        return any(
            pattern.search(text)
            for text in _iter_strings(value)
            for pattern in PII_PATTERNS.values()
        )

    def _contains_sensitive(self, value: Any) -> bool:
        return any(
            keyword in text.lower()
            for text in _iter_strings(value)
            for keyword in SENSITIVE_KEYWORDS
        )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_quality_score(data: EnrichedCVData, issues: List[ValidationIssue]) -> int:
        score = 100
        for issue in issues:
            score -= SEVERITY_PENALTY[issue.severity]

        if data.github is not None and data.github.profile is not None:
            score += SECTION_BONUS
        if data.linkedin is not None and data.linkedin.profile is not None:
            score += SECTION_BONUS
        if data.web_presence is not None and data.web_presence.search_results:
            score += SECTION_BONUS
        if data.personal_website is not None and data.personal_website.portfolio_projects:
            score += SECTION_BONUS

        return max(0, min(100, score))


def _iter_strings(value: Any):
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for v in value.values():
            yield from _iter_strings(v)
    elif isinstance(value, list):
        for v in value:
            yield from _iter_strings(v)
