"""Pattern suggestions - recurring templates the owner has not declared yet"""
import logging

from sqlalchemy.orm import Session

from obligations.config import get_settings
from obligations.domain.patterns import DetectedPattern, detect_patterns
from obligations.infrastructure.repositories import TemplateRepository, LedgerRepository

logger = logging.getLogger(__name__)


def suggest_patterns(db: Session, owner_id: str) -> list[DetectedPattern]:
    """
    Run pattern inference over the owner's recent history.

    (property_id, category) pairs already covered by a template are excluded,
    so accepted suggestions do not come back.
    """
    settings = get_settings()
    history = LedgerRepository(db).history(owner_id, settings.PATTERN_HISTORY_LIMIT)
    covered = {(t.property_id, t.category) for t in TemplateRepository(db).list_all(owner_id)}

    eligible = [
        tx for tx in history
        if tx.property_id and (tx.property_id, tx.category) not in covered
    ]
    patterns = detect_patterns(eligible, min_confidence=settings.PATTERN_MIN_CONFIDENCE)
    logger.info(
        "Pattern suggestions for owner_id=%s: %d pattern(s) from %d transaction(s)",
        owner_id, len(patterns), len(eligible),
    )
    return patterns
