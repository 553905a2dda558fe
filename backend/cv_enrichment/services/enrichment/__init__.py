from .certification import CertificationEnrichmentService
from .hobbies import HobbiesEnrichmentService
from .portfolio import PortfolioEnrichmentService
from .service import EnrichmentService, calculate_cv_quality_score
from .skills import SkillsEnrichmentService

__all__ = [
    "CertificationEnrichmentService",
    "HobbiesEnrichmentService",
    "PortfolioEnrichmentService",
    "SkillsEnrichmentService",
    "EnrichmentService",
    "calculate_cv_quality_score",
]
