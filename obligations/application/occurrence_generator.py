"""
Occurrence Generator - materializes upcoming occurrences for active templates.

Window: [today, today + LOOKAHEAD_DAYS]. Idempotent: dates already stored for
a template are skipped, so repeated runs never duplicate rows.

Each template is written inside its own savepoint. A concurrent run that
stored the same (template, date) first only costs that template's batch.
"""
import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from obligations.config import get_settings
from obligations.domain.schedule import materialize
from obligations.infrastructure.repositories import TemplateRepository, template_from_row

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    generated: int = 0
    errors: list[str] = field(default_factory=list)


class OccurrenceGenerator:
    def __init__(self, db: Session, lookahead_days: int | None = None):
        self.db = db
        self.templates = TemplateRepository(db)
        self.lookahead_days = lookahead_days if lookahead_days is not None else get_settings().LOOKAHEAD_DAYS

    def generate(self, owner_id: str | None = None, today: date | None = None) -> GenerationResult:
        """Generate missing occurrences for every active template (optionally one owner)."""
        if today is None:
            today = date.today()

        result = GenerationResult()
        for row in self.templates.active_rows(owner_id):
            template_id = row.id
            try:
                template = template_from_row(row)
                existing = self.templates.materialized_dates(template_id)
                new = materialize(template, today, self.lookahead_days, existing)
                with self.db.begin_nested():
                    count = self.templates.add_occurrences(new)
                    self.db.flush()
                result.generated += count
            except IntegrityError as e:
                logger.warning("Occurrences for template_id=%s already stored by another run", template_id)
                result.errors.append(f"Failed to generate for template {template_id}: {e.orig}")
            except Exception as e:
                logger.exception("Occurrence generation failed for template_id=%s", template_id)
                result.errors.append(f"Failed to generate for template {template_id}: {e}")

        if result.generated > 0:
            self.db.commit()
        logger.info("Generated %d occurrence(s)", result.generated)
        return result
