"""Tests for the durable -> volatile -> LLM validation chain."""
import json

from learnpath.db.models.node_pair_validation import NodePairValidation
from learnpath.validation import service
from learnpath.validation.cache import SingleFlight, VolatileCache, pair_key
from learnpath.validation.service import (
    ValidationSource,
    ensure_pair_validated,
    get_volatile_cache,
    lookup_validation,
    resolve_validation,
)

from tests.conftest import FakeLLM

INVALID_ORDER = json.dumps(
    {"isValid": False, "reason": "Backwards", "recommendation": "Learn Python first"}
)


def test_second_request_is_served_from_database(db):
    llm = FakeLLM(validate=INVALID_ORDER)

    first = resolve_validation(db, "Python", "Django", llm=llm)
    second = resolve_validation(db, "Python", "Django", llm=llm)

    assert first.source == ValidationSource.FRESH
    assert first.saved is True
    assert second.source == ValidationSource.DATABASE
    assert second.result == first.result
    assert second.result.recommendation == "Learn Python first"
    assert llm.count("validate") == 1


def test_case_variants_share_the_durable_entry(db):
    llm = FakeLLM()
    resolve_validation(db, "Python", "Django", llm=llm)

    again = resolve_validation(db, "  python ", "DJANGO", llm=llm)

    assert again.source == ValidationSource.DATABASE
    assert llm.count("validate") == 1
    assert db.query(NodePairValidation).count() == 1
    row = db.query(NodePairValidation).one()
    assert (row.source_name, row.target_name) == ("python", "django")


def test_durable_write_failure_still_returns_verdict(db, monkeypatch):
    def broken_save(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(service, "save_validation", broken_save)
    llm = FakeLLM(validate=INVALID_ORDER)
    cache = VolatileCache()

    resolved = resolve_validation(db, "Django", "Python", llm=llm, cache=cache, flights=SingleFlight())

    assert resolved.source == ValidationSource.FRESH
    assert resolved.saved is False
    assert resolved.result.is_valid is False
    assert cache.get(pair_key("Django", "Python")) == resolved.result
    assert len(get_volatile_cache()) == 0, "the shared cache stays untouched"

    # the volatile layer answers the retry
    retry = resolve_validation(db, "Django", "Python", llm=llm, cache=cache, flights=SingleFlight())
    assert retry.source == ValidationSource.CACHE
    assert llm.count("validate") == 1


def test_database_wins_over_volatile_cache(db):
    cache = VolatileCache()
    llm = FakeLLM(validate=INVALID_ORDER)
    resolve_validation(db, "HTML", "CSS", llm=llm, cache=cache)
    assert cache.get(pair_key("HTML", "CSS")) is not None
    assert len(get_volatile_cache()) == 0
    cache.clear()
    cache.set(pair_key("HTML", "CSS"), "stale volatile verdict")

    resolved = resolve_validation(db, "HTML", "CSS", llm=llm, cache=cache)

    assert resolved.source == ValidationSource.DATABASE
    assert resolved.result.reason == "Backwards"


def test_unreachable_model_fails_open(db):
    llm = FakeLLM(validate=ConnectionError("groq down"))

    resolved = resolve_validation(db, "SQL", "Databases", llm=llm)

    assert resolved.result.is_valid is True
    assert resolved.result.reason
    assert lookup_validation(db, "SQL", "Databases") is not None


def test_reply_without_json_uses_unavailable_default(db):
    llm = FakeLLM(validate="Sorry, I cannot help with that.")

    resolved = resolve_validation(db, "Git", "GitHub", llm=llm)

    assert resolved.result.is_valid is True
    assert "could not be validated" in resolved.result.reason


def test_reply_with_commentary_around_json_is_parsed(db):
    llm = FakeLLM(validate='Sure! {"isValid": false, "reason": "Too early {really}"} Hope this helps.')

    resolved = resolve_validation(db, "Calculus", "Arithmetic", llm=llm)

    assert resolved.result.is_valid is False
    assert resolved.result.reason == "Too early {really}"


def test_ensure_pair_validated_reuses_durable_entry(db):
    llm = FakeLLM(validate=INVALID_ORDER)
    ensure_pair_validated(db, "React", "JavaScript", llm=llm)
    verdict = ensure_pair_validated(db, "react", "javascript", llm=llm)

    assert verdict.is_valid is False
    assert llm.count("validate") == 1


def test_empty_injected_cache_is_the_one_used(db):
    cache = VolatileCache()
    assert len(cache) == 0

    resolve_validation(db, "Flask", "Jinja", llm=FakeLLM(), cache=cache, flights=SingleFlight())

    assert len(cache) == 1
    assert len(get_volatile_cache()) == 0


def test_colon_in_titles_keeps_pairs_apart(db, monkeypatch):
    def broken_save(*args, **kwargs):
        raise RuntimeError("database unavailable")

    # with no durable rows only the volatile key tells the pairs apart
    monkeypatch.setattr(service, "save_validation", broken_save)
    llm = FakeLLM()
    cache = VolatileCache()

    first = resolve_validation(db, "C++:STL", "Templates", llm=llm, cache=cache)
    second = resolve_validation(db, "C++", "STL:Templates", llm=llm, cache=cache)

    assert first.source == ValidationSource.FRESH
    assert second.source == ValidationSource.FRESH
    assert llm.count("validate") == 2
    assert len(cache) == 2


class CompetitorFinishesFirst(VolatileCache):
    """On the first miss, lets a competing request complete the same pair."""

    def __init__(self, competitor):
        super().__init__()
        self.competitor = competitor

    def get(self, key):
        value = super().get(key)
        if value is None and self.competitor is not None:
            run, self.competitor = self.competitor, None
            run()
        return value


def test_late_caller_reuses_verdict_finished_after_its_miss(db):
    llm = FakeLLM(validate=INVALID_ORDER)
    flights = SingleFlight()
    competing = []

    def competitor():
        competing.append(resolve_validation(db, "Python", "Django", llm=llm, cache=cache, flights=flights))

    cache = CompetitorFinishesFirst(competitor)

    late = resolve_validation(db, "Python", "Django", llm=llm, cache=cache, flights=flights)

    assert competing[0].source == ValidationSource.FRESH
    assert late.source == ValidationSource.DATABASE
    assert late.result == competing[0].result
    assert llm.count("validate") == 1
    assert flights.inflight() == 0
