# learnpath/validation/service.py
"""
Path validation cache chain: durable table -> volatile cache -> LLM.

A durable hit wins and never touches the volatile cache. A miss in both
layers runs the LLM validator once per pair (single-flight), upserts the
verdict into the durable table (best-effort) and stores it in the volatile
cache.
"""
import enum
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from learnpath.agents.llm.base import LLMClient
from learnpath.agents.path_validator import validate_learning_path
from learnpath.agents.schemas import ValidationResult
from learnpath.db.models.node_pair_validation import NodePairValidation
from learnpath.settings import settings
from learnpath.validation.cache import SingleFlight, VolatileCache, canonical_title, pair_key

logger = logging.getLogger(__name__)


class ValidationSource(str, enum.Enum):
    DATABASE = "database"
    CACHE = "cache"
    FRESH = "fresh"


@dataclass
class ResolvedValidation:
    result: ValidationResult
    source: ValidationSource
    saved: bool = False  # durable write succeeded (fresh results only)


_volatile_cache = VolatileCache(
    ttl_seconds=settings.validation_cache_ttl_seconds,
    max_entries=settings.validation_cache_max_entries,
)
_flights: SingleFlight = SingleFlight()


def get_volatile_cache() -> VolatileCache:
    return _volatile_cache


def get_flights() -> SingleFlight:
    return _flights


# -------------------------
# Durable layer
# -------------------------
_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def lookup_validation(db: Session, source: str, target: str) -> ValidationResult | None:
    row = (
        db.query(NodePairValidation)
        .filter(
            NodePairValidation.source_name == canonical_title(source),
            NodePairValidation.target_name == canonical_title(target),
        )
        .first()
    )
    if not row:
        return None
    return ValidationResult(
        is_valid=row.is_valid,
        reason=row.validation_reason,
        recommendation=row.recommendation,
    )


def save_validation(db: Session, source: str, target: str, result: ValidationResult) -> None:
    """Upsert keyed on the canonical pair; last write wins. Raises on failure."""
    dialect = db.get_bind().dialect.name
    insert = _DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"No upsert support for dialect {dialect!r}")

    stmt = insert(NodePairValidation).values(
        id=uuid.uuid4(),
        source_name=canonical_title(source),
        target_name=canonical_title(target),
        is_valid=result.is_valid,
        validation_reason=result.reason,
        recommendation=result.recommendation,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["source_name", "target_name"],
        set_={
            "is_valid": stmt.excluded.is_valid,
            "validation_reason": stmt.excluded.validation_reason,
            "recommendation": stmt.excluded.recommendation,
            "updated_at": func.now(),
        },
    )
    db.execute(stmt)
    db.commit()


def find_cached_verdict(db: Session, source: str, target: str) -> ValidationResult | None:
    try:
        return lookup_validation(db, source, target)
    except Exception:
        logger.exception("Durable validation lookup failed: %s -> %s", source, target)
        db.rollback()
        return None


def _safe_save(db: Session, source: str, target: str, result: ValidationResult) -> bool:
    try:
        save_validation(db, source, target, result)
    except Exception:
        logger.exception("Database insert error for validation %s -> %s", source, target)
        db.rollback()
        return False
    logger.info("Saved validation to DB: %s -> %s", source, target)
    return True


# -------------------------
# Chain
# -------------------------
def resolve_validation(
    db: Session,
    from_title: str,
    to_title: str,
    *,
    llm: LLMClient | None = None,
    cache: VolatileCache | None = None,
    flights: SingleFlight | None = None,
) -> ResolvedValidation:
    # an empty cache is falsy (__len__), so compare against None
    cache = cache if cache is not None else _volatile_cache
    flights = flights if flights is not None else _flights
    source, target = from_title.strip(), to_title.strip()
    key = pair_key(source, target)

    def lookup() -> ResolvedValidation | None:
        stored = find_cached_verdict(db, source, target)
        if stored is not None:
            logger.info("Validation found in DB cache: %s -> %s is_valid=%s", source, target, stored.is_valid)
            return ResolvedValidation(result=stored, source=ValidationSource.DATABASE)
        cached = cache.get(key)
        if cached is not None:
            logger.info("In-memory cache hit for: %s -> %s", source, target)
            return ResolvedValidation(result=cached, source=ValidationSource.CACHE)
        return None

    found = lookup()
    if found is not None:
        return found

    def compute() -> ResolvedValidation:
        # a previous leader may have finished between our miss and taking the flight
        found = lookup()
        if found is not None:
            return found
        logger.info("Cache miss, calling AI for: %s -> %s", source, target)
        result = validate_learning_path(source, target, llm=llm)
        saved = _safe_save(db, source, target, result)
        cache.set(key, result)
        return ResolvedValidation(result=result, source=ValidationSource.FRESH, saved=saved)

    resolved, shared = flights.do(key, compute)
    if shared:
        logger.info("Joined in-flight validation for: %s -> %s", source, target)
    return resolved


def ensure_pair_validated(db: Session, source: str, target: str,
llm: LLMClient | None = None) -> ValidationResult:
    """Warm the durable cache for a pair; used when edges are generated server-side."""
    stored = find_cached_verdict(db, source, target)
    if stored is not None:
        logger.info("Using cached validation for: %s -> %s", source, target)
        return stored
    logger.info("Generating validation for: %s -> %s", source, target)
    result = validate_learning_path(source, target, llm=llm)
    _safe_save(db, source, target, result)
    return result
