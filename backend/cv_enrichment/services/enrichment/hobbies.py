"""
Hobbies & interests enrichment - infers interests from GitHub topics and
activity, blog tags on the personal website, and speaking/publication
history from web search.
"""
import logging
import re
from typing import Dict, List

from ...schemas.cv import ParsedCV
from ...schemas.enrichment import (
    CategorizedInterests,
    HobbiesEnrichmentResult,
    InterestRecord,
)
from ...schemas.external_data import BlogPost, EnrichedCVData, GitHubData, WebPublication
from ...utils import normalize_key

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.5
POLYGLOT_LANGUAGE_COUNT = 3
OPEN_SOURCE_CONTRIBUTIONS = 100

BORING_TOPICS = ["website", "portfolio", "personal", "test", "demo", "example"]

# Checked in order; the first category with a matching keyword wins
CATEGORY_KEYWORDS = [
    ("technical", ["programming", "coding", "development", "tech", "software",
                   "hardware", "ai", "machine learning", "data", "cloud"]),
    ("creative", ["design", "art", "music", "writing", "photography",
                  "video", "creative", "drawing", "painting"]),
    ("community", ["volunteer", "mentor", "teaching", "speaking", "community",
                   "open source", "contribution", "organizing"]),
    ("professional", ["leadership", "management", "business", "entrepreneur",
                      "innovation", "strategy", "consulting"]),
]

_CATEGORY_PATTERNS = [
    (category, re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")\b"))
    for category, keywords in CATEGORY_KEYWORDS
]


def categorize_interest(interest: str) -> str:
    lower = interest.lower()
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(lower):
            return category
    return "personal"


def is_interesting_topic(topic: str) -> bool:
    lower = topic.lower()
    return not any(boring in lower for boring in BORING_TOPICS)


def format_topic(topic: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in topic.split("-"))


def interest_key(record: InterestRecord) -> str:
    return normalize_key(record.interest)


class HobbiesEnrichmentService:
    def enrich_hobbies(self, cv: ParsedCV, external_data: EnrichedCVData) -> HobbiesEnrichmentResult:
        logger.info("[ENRICHMENT] Starting hobbies enrichment")

        existing = self.extract_existing_interests(cv)
        merged = self.merge_interests(
            existing,
            self.extract_github_interests(external_data.github),
            self.extract_website_interests(external_data),
            self.extract_web_presence_interests(external_data),
        )
        existing_keys = {interest_key(i) for i in existing}

        result = HobbiesEnrichmentResult(
            enriched_interests=merged,
            categorized_interests=self.categorize_interests(merged),
            new_interests_added=sum(1 for i in merged if interest_key(i) not in existing_keys),
            quality_score=self.calculate_quality_score(merged),
        )
        logger.info(f"[ENRICHMENT] Hobbies: {result.new_interests_added} new interests")
        return result

    @staticmethod
    def extract_existing_interests(cv: ParsedCV) -> List[InterestRecord]:
        return [
            InterestRecord(
                category=categorize_interest(interest),
                interest=interest,
                evidence=["Listed in CV"],
                source="cv",
                confidence=1.0,
            )
            for interest in cv.interests
        ]

    @staticmethod
    def extract_github_interests(github: GitHubData) -> List[InterestRecord]:
        if github is None:
            return []

        topics = []
        languages = set()
        for repo in github.repositories:
            for topic in repo.topics:
                if topic not in topics:
                    topics.append(topic)
            if repo.language:
                languages.add(repo.language)

        interests = [
            InterestRecord(
                category="technical",
                interest=format_topic(topic),
                evidence=[f"GitHub topic: {topic}"],
                source="github",
                confidence=0.7,
            )
            for topic in topics
            if is_interesting_topic(topic)
        ]

        if len(languages) > POLYGLOT_LANGUAGE_COUNT:
            interests.append(InterestRecord(
                category="technical",
                interest="Polyglot Programming",
                evidence=[f"Works with {len(languages)} programming languages"],
                source="github",
                confidence=0.8,
            ))

        has_forks = any(repo.is_fork for repo in github.repositories)
        if has_forks or github.stats.total_contributions > OPEN_SOURCE_CONTRIBUTIONS:
            interests.append(InterestRecord(
                category="community",
                interest="Open Source Contribution",
                evidence=["Active GitHub contributor"],
                source="github",
                confidence=0.9,
            ))
        return interests

    def extract_website_interests(self, external_data: EnrichedCVData) -> List[InterestRecord]:
        website = external_data.personal_website
        if website is None:
            return []
        return [
            InterestRecord(
                category=categorize_interest(topic),
                interest=topic,
                evidence=["Blog posts on personal website"],
                source="website",
                confidence=0.8,
            )
            for topic in self.extract_blog_topics(website.blog_posts)
        ]

    def extract_web_presence_interests(self, external_data: EnrichedCVData) -> List[InterestRecord]:
        web = external_data.web_presence
        if web is None:
            return []

        interests = []
        if web.speaking_engagements:
            interests.append(InterestRecord(
                category="community",
                interest="Public Speaking",
                evidence=[e.event for e in web.speaking_engagements],
                source="web",
                confidence=0.9,
            ))
        for topic in self.extract_publication_topics(web.publications):
            interests.append(InterestRecord(
                category="professional",
                interest=topic,
                evidence=["Published articles"],
                source="web",
                confidence=0.8,
            ))
        return interests

    @staticmethod
    def extract_blog_topics(posts: List[BlogPost]) -> List[str]:
        topics = []
        for post in posts:
            for tag in post.tags:
                formatted = format_topic(tag)
                if is_interesting_topic(tag) and formatted not in topics:
                    topics.append(formatted)
        return topics

    @staticmethod
    def extract_publication_topics(publications: List[WebPublication]) -> List[str]:
        topics = []
        for pub in publications:
            topic = {"article": "Technical Writing", "paper": "Research"}.get(pub.type)
            if topic and topic not in topics:
                topics.append(topic)
        return topics

    @staticmethod
    def merge_interests(*groups: List[InterestRecord]) -> List[InterestRecord]:
        merged: Dict[str, InterestRecord] = {}
        for group in groups:
            for interest in group:
                key = interest_key(interest)
                current = merged.get(key)
                if current is None:
                    merged[key] = interest
                    continue
                merged[key] = current.model_copy(update={
                    "evidence": list(dict.fromkeys(current.evidence + interest.evidence)),
                    "confidence": max(current.confidence, interest.confidence),
                })

        kept = [i for i in merged.values() if i.confidence > MIN_CONFIDENCE]
        return sorted(kept, key=lambda i: i.confidence, reverse=True)

    @staticmethod
    def categorize_interests(interests: List[InterestRecord]) -> CategorizedInterests:
        categorized = CategorizedInterests()
        for interest in interests:
            bucket = getattr(categorized, interest.category)
            if interest.interest not in bucket:
                bucket.append(interest.interest)
        return categorized

    @staticmethod
    def calculate_quality_score(interests: List[InterestRecord]) -> int:
        if not interests:
            return 0
        diversity = len({i.category for i in interests})
        avg_confidence = sum(i.confidence for i in interests) / len(interests)
        evidence_quality = sum(1 for i in interests if len(i.evidence) > 1) / len(interests)
        score = round(diversity * 20 + avg_confidence * 50 + evidence_quality * 30)
        return min(100, score)
