"""
Certification enrichment - verifies CV certifications against LinkedIn and
picks up certification-like awards from web search.
"""
import calendar
import logging
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from ...schemas.cv import ParsedCV
from ...schemas.enrichment import CertificationEnrichmentResult, CertificationRecord
from ...schemas.external_data import EnrichedCVData, LinkedInCertification
from ...utils import normalize_key, parse_date

logger = logging.getLogger(__name__)

CV_CERTIFICATION_CONFIDENCE = 0.7
LINKEDIN_CERTIFICATION_CONFIDENCE = 0.95
WEB_CERTIFICATION_CONFIDENCE = 0.5
EXPIRING_SOON_MONTHS = 3

CERTIFICATION_KEYWORDS = [
    "certified", "certification", "certificate",
    "accredited", "licensed", "credential",
    "qualified", "professional", "specialist",
]

ValidityStatus = Literal["valid", "expired", "expiring_soon", "unknown"]


def certification_key(cert: CertificationRecord) -> str:
    return f"{normalize_key(cert.name)}_{normalize_key(cert.issuer)[:10]}"


def is_likely_certification(title: str) -> bool:
    lower = title.lower()
    return any(keyword in lower for keyword in CERTIFICATION_KEYWORDS)


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day (Jan 31 + 1 month = Feb 28/29)."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _sort_key(cert: CertificationRecord):
    issued = parse_date(cert.date)
    # Verified first, then newest first, undated last
    return (0 if cert.verified else 1, -issued.timestamp() if issued else float("inf"))


class CertificationEnrichmentService:
    def enrich_certifications(self, cv: ParsedCV, external_data: EnrichedCVData) -> CertificationEnrichmentResult:
        logger.info("[ENRICHMENT] Starting certification enrichment")

        existing = self.extract_existing_certifications(cv)
        linkedin = external_data.linkedin.certifications if external_data.linkedin else []
        web = self.extract_web_certifications(external_data)

        merged = self.merge_certifications(existing, linkedin, web)
        existing_keys = {certification_key(c) for c in existing}

        result = CertificationEnrichmentResult(
            enriched_certifications=merged,
            new_certifications_added=sum(1 for c in merged if certification_key(c) not in existing_keys),
            certifications_verified=sum(1 for c in merged if c.verified),
            quality_score=self.calculate_quality_score(merged),
        )
        logger.info(
            f"[ENRICHMENT] Certifications: {result.new_certifications_added} new, "
            f"{result.certifications_verified} verified"
        )
        return result

    @staticmethod
    def extract_existing_certifications(cv: ParsedCV) -> List[CertificationRecord]:
        return [
            CertificationRecord(
                name=c.name,
                issuer=c.issuer or "",
                date=c.date or "",
                credential_id=c.credential_id,
                credential_url=c.credential_url,
                expiration_date=c.expiration_date,
                certificate_image=c.certificate_image,
                source="cv",
                verified=False,
                confidence=CV_CERTIFICATION_CONFIDENCE,
            )
            for c in cv.certifications
        ]

    @staticmethod
    def extract_web_certifications(external_data: EnrichedCVData) -> List[CertificationRecord]:
        if external_data.web_presence is None:
            return []
        return [
            CertificationRecord(
                name=award.title,
                issuer=award.organization,
                date=award.date or "",
                source="web",
                verified=False,
                confidence=WEB_CERTIFICATION_CONFIDENCE,
            )
            for award in external_data.web_presence.awards
            if is_likely_certification(award.title)
        ]

    @staticmethod
    def from_linkedin(cert: LinkedInCertification) -> CertificationRecord:
        return CertificationRecord(
            name=cert.name,
            issuer=cert.issuing_organization,
            date=cert.issue_date or "",
            credential_id=cert.credential_id,
            credential_url=cert.credential_url,
            expiration_date=cert.expiration_date,
            source="linkedin",
            verified=True,
            confidence=LINKEDIN_CERTIFICATION_CONFIDENCE,
        )

    def merge_certifications(
        self,
        existing: List[CertificationRecord],
        linkedin: List[LinkedInCertification],
        web: List[CertificationRecord],
    ) -> List[CertificationRecord]:
        merged: Dict[str, CertificationRecord] = {}
        for cert in existing:
            merged[certification_key(cert)] = cert

        for li_cert in linkedin:
            record = self.from_linkedin(li_cert)
            key = certification_key(record)
            current = merged.get(key)
            merged[key] = self.enhance_certification(current, record) if current is not None else record

        # Web hits never override what the CV or LinkedIn already say
        for cert in web:
            merged.setdefault(certification_key(cert), cert)

        return sorted(merged.values(), key=_sort_key)

    @staticmethod
    def enhance_certification(existing: CertificationRecord, additional: CertificationRecord) -> CertificationRecord:
        return existing.model_copy(update={
            "credential_id": existing.credential_id or additional.credential_id,
            "credential_url": existing.credential_url or additional.credential_url,
            "expiration_date": existing.expiration_date or additional.expiration_date,
            "certificate_image": existing.certificate_image or additional.certificate_image,
            "source": additional.source,
            "verified": additional.verified or existing.verified,
            "confidence": max(existing.confidence, additional.confidence),
        })

    @staticmethod
    def calculate_quality_score(certs: List[CertificationRecord]) -> int:
        if not certs:
            return 0
        total = 0
        for cert in certs:
            score = 0
            if cert.verified:
                score += 40
            if cert.credential_id:
                score += 20
            if cert.credential_url:
                score += 20
            if cert.expiration_date:
                score += 10
            if cert.certificate_image:
                score += 10
            total += score
        return round(total / len(certs))

    @staticmethod
    def is_expired(cert: CertificationRecord, now: Optional[datetime] = None) -> bool:
        expires = parse_date(cert.expiration_date)
        if expires is None:
            return False
        return expires < (now or datetime.now(timezone.utc))

    @staticmethod
    def get_validity_status(cert: CertificationRecord, now: Optional[datetime] = None) -> ValidityStatus:
        """valid / expired / expiring_soon (within three months) / unknown (no usable date)."""
        expires = parse_date(cert.expiration_date)
        if expires is None:
            return "unknown"
        now = now or datetime.now(timezone.utc)
        if expires < now:
            return "expired"
        if expires < add_months(now, EXPIRING_SOON_MONTHS):
            return "expiring_soon"
        return "valid"
