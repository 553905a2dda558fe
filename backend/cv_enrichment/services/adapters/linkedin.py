"""
LinkedIn adapter.

LinkedIn has no public profile API, so this talks to a configurable profile
data provider: GET {linkedin_api_url}?url=<profile url> with a bearer key.
Without credentials the adapter returns an empty LinkedInData.
"""
import logging
from typing import Optional

import httpx

from ...config import Settings, get_settings
from ...exceptions import SourceFetchError
from ...schemas.external_data import (
    LinkedInCertification,
    LinkedInData,
    LinkedInEducation,
    LinkedInExperience,
    LinkedInProfile,
    SourceId,
)
from .base import SourceAdapter

logger = logging.getLogger(__name__)


def to_profile_url(identifier: str) -> str:
    """Turn a vanity name or partial URL into a full profile URL."""
    value = (identifier or "").strip().rstrip("/")
    if value.startswith(("http://", "https://")):
        return value
    if "linkedin.com" in value:
        return f"https://{value}"
    return f"https://www.linkedin.com/in/{value}"


class LinkedInAdapter(SourceAdapter):
    source_id = SourceId.LINKEDIN
    schema = LinkedInData

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.linkedin_api_url and self.settings.linkedin_api_key)

    async def fetch_data(self, identifier: str) -> LinkedInData:
        return await super().fetch_data(to_profile_url(identifier))

    async def _fetch(self, profile_url: str) -> LinkedInData:
        if not self.is_configured:
            logger.warning("[LINKEDIN] Profile API not configured, returning empty data")
            return LinkedInData(profile=LinkedInProfile(profile_url=profile_url))

        logger.info(f"[LINKEDIN] Fetching profile {profile_url}")
        try:
            async with self._session() as client:
                response = await self._get(
                    client,
                    self.settings.linkedin_api_url,
                    params={"url": profile_url},
                    headers={"Authorization": f"Bearer {self.settings.linkedin_api_key}"},
                )
                if response.status_code == 404:
                    logger.info(f"[LINKEDIN] Profile not found: {profile_url}")
                    return LinkedInData(profile=LinkedInProfile(profile_url=profile_url))
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"[LINKEDIN] Fetch failed for {profile_url}: {e}")
            raise SourceFetchError(f"LinkedIn fetch failed: {e}", source=self.source_id.value) from e

        data = self.parse_profile(payload, profile_url)
        logger.info(
            f"[LINKEDIN] Fetched {profile_url}: {len(data.experience)} roles, "
            f"{len(data.skills)} skills, {len(data.certifications)} certifications"
        )
        return data

    @staticmethod
    def parse_profile(payload: dict, profile_url: str) -> LinkedInData:
        skills = []
        for skill in payload.get("skills") or []:
            name = skill.get("name") if isinstance(skill, dict) else skill
            if name:
                skills.append(str(name).strip())

        return LinkedInData(
            profile=LinkedInProfile(
                profile_url=payload.get("profile_url") or profile_url,
                headline=payload.get("headline"),
                summary=payload.get("summary"),
                location=payload.get("location"),
                industry=payload.get("industry"),
                connections=payload.get("connections"),
            ),
            experience=[
                LinkedInExperience(
                    title=exp.get("title") or "",
                    company=exp.get("company") or "",
                    location=exp.get("location"),
                    start_date=exp.get("start_date"),
                    end_date=exp.get("end_date"),
                    description=exp.get("description"),
                    skills=exp.get("skills") or [],
                )
                for exp in payload.get("experience") or []
            ],
            education=[
                LinkedInEducation(
                    school=edu.get("school") or "",
                    degree=edu.get("degree"),
                    field_of_study=edu.get("field_of_study"),
                    start_date=edu.get("start_date"),
                    end_date=edu.get("end_date"),
                    grade=edu.get("grade"),
                    activities=edu.get("activities") or [],
                )
                for edu in payload.get("education") or []
            ],
            certifications=[
                LinkedInCertification(
                    name=cert.get("name") or "",
                    issuing_organization=cert.get("issuing_organization") or cert.get("authority") or "",
                    issue_date=cert.get("issue_date"),
                    expiration_date=cert.get("expiration_date"),
                    credential_id=cert.get("credential_id"),
                    credential_url=cert.get("credential_url"),
                )
                for cert in payload.get("certifications") or []
                if cert.get("name")
            ],
            skills=skills,
            endorsements=payload.get("endorsements") or 0,
        )
