import pytest
from sqlalchemy.exc import OperationalError

from extensions import db
from factories import card_row, create_deck, create_sample_deck
from models import DeckAnalysis
from services.analysis_store import (
    AnalysisMode,
    PersistOutcome,
    decode_card_types,
    decode_mana_curve,
    encode_card_types,
    encode_count_map,
    get_deck_analysis,
    load_analysis,
    persist_analysis,
    select_deck_ids,
)
from services.deck_analysis import aggregate_deck
from shared.exceptions import BatchInitError, PersistError


def _removal_heavy():
    return aggregate_deck([
        card_row(name="Murder", cmc=3, mana_cost="{1}{B}{B}", type_line="Instant",
                 oracle_text="Destroy target creature.", quantity=4),
        card_row(name="Forest", type_line="Basic Land — Forest", quantity=6),
    ])


def _draw_only():
    return aggregate_deck([
        card_row(name="Opt", cmc=1, mana_cost="{U}", type_line="Instant",
                 oracle_text="Scry 1. Draw a card.", quantity=1),
    ])


def test_encoding_is_sorted_and_stable():
    assert encode_count_map({10: 1, 2: 3, 0: 1}) == '{"0":1,"2":3,"10":1}'
    assert encode_count_map({"U": 2, "B": 1}) == '{"B":1,"U":2}'
    assert encode_card_types({"Instant", "Creature"}) == '["Creature","Instant"]'

    curve_text = encode_count_map({4: 1, 2: 2})
    assert encode_count_map(decode_mana_curve(curve_text)) == curve_text
    types_text = encode_card_types({"Sorcery", "Artifact"})
    assert encode_card_types(decode_card_types(types_text)) == types_text


def test_decoders_tolerate_empty_or_bad_text():
    assert decode_mana_curve(None) == {}
    assert decode_mana_curve("not json") == {}
    assert decode_card_types("{}") == set()


def test_analysis_mode_parse():
    assert AnalysisMode.parse(None) is AnalysisMode.FRESH
    assert AnalysisMode.parse("fresh-only") is AnalysisMode.FRESH
    assert AnalysisMode.parse("OVERWRITE") is AnalysisMode.OVERWRITE
    with pytest.raises(ValueError):
        AnalysisMode.parse("sometimes")


def test_persist_writes_full_record(db_session):
    deck = create_sample_deck()
    aggregate = aggregate_deck([
        card_row(name="Divination Lite", cmc=2, mana_cost="{1}{U}", oracle_text="Draw a card.", quantity=2),
    ])

    outcome = persist_analysis(db.session, deck.id, aggregate)
    stored = load_analysis(db.session, deck.id)

    assert outcome is PersistOutcome.WRITTEN
    assert stored["draw_count"] == 2
    assert stored["mana_curve"] == {2: 2}
    assert stored["color_symbols"]["U"] == 2
    assert stored["card_types"] == {"Instant"}
    assert stored["version"] == 1
    assert stored["analyzed_at"]


def test_fresh_mode_keeps_first_record(db_session):
    deck = create_deck()
    db.session.commit()

    first = persist_analysis(db.session, deck.id, _removal_heavy())
    second = persist_analysis(db.session, deck.id, _draw_only())
    stored = load_analysis(db.session, deck.id)

    assert first is PersistOutcome.WRITTEN
    assert second is PersistOutcome.SKIPPED
    assert stored["single_target_removal_count"] == 4
    assert stored["draw_count"] == 0
    assert stored["land_count"] == 6
    assert db.session.query(DeckAnalysis).count() == 1


def test_overwrite_mode_replaces_every_field(db_session):
    deck = create_deck()
    db.session.commit()

    persist_analysis(db.session, deck.id, _removal_heavy())
    outcome = persist_analysis(db.session, deck.id, _draw_only(), overwrite=True)
    stored = load_analysis(db.session, deck.id)

    assert outcome is PersistOutcome.WRITTEN
    assert stored["single_target_removal_count"] == 0
    assert stored["draw_count"] == 1
    assert stored["land_count"] == 0
    assert stored["basic_land_count"] == 0
    assert stored["mana_curve"] == {1: 1}
    assert stored["color_symbols"]["B"] == 0
    assert stored["card_types"] == {"Instant"}
    assert stored["average_mana_value"] == 1
    assert db.session.query(DeckAnalysis).count() == 1


def test_overwrite_inserts_when_missing(db_session):
    deck = create_deck()
    db.session.commit()
    assert persist_analysis(db.session, deck.id, _draw_only(), overwrite=True) is PersistOutcome.WRITTEN
    assert get_deck_analysis(deck.id)["draw_count"] == 1


def test_persist_failure_raises_persist_error(db_session, monkeypatch):
    deck = create_deck()
    db.session.commit()
    # Read the id now; after commit a lazy reload would go through the patched execute.
    deck_id = deck.id

    def _boom(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(type(db.session()), "execute", _boom)
    with pytest.raises(PersistError) as excinfo:
        persist_analysis(db.session, deck_id, _draw_only())
    monkeypatch.undo()

    assert excinfo.value.deck_id == deck_id
    assert isinstance(excinfo.value.__cause__, OperationalError)
    assert load_analysis(db.session, deck_id) is None
    assert select_deck_ids(db.session, AnalysisMode.FRESH) == [deck_id]


def test_select_deck_ids_by_mode(db_session):
    analyzed = create_deck(deck_id="b-analyzed")
    pending = create_deck(deck_id="a-pending")
    db.session.commit()
    persist_analysis(db.session, analyzed.id, _draw_only())

    assert select_deck_ids(db.session, AnalysisMode.FRESH) == [pending.id]
    assert select_deck_ids(db.session, "overwrite") == ["a-pending", "b-analyzed"]


def test_select_failure_is_batch_init_error(db_session, monkeypatch):
    def _boom(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("no such table"))

    monkeypatch.setattr(type(db.session()), "query", _boom)
    with pytest.raises(BatchInitError):
        select_deck_ids(db.session, AnalysisMode.FRESH)


def test_load_missing_analysis_returns_none(db_session):
    assert get_deck_analysis("nope") is None
