from book_analysis.analysis.canonicalize import build_name_map, canonicalize_state
from book_analysis.data_models.entities import (
    AnalysisState,
    Character,
    Interaction,
    Relationship,
)


def _elsinore_state() -> AnalysisState:
    return AnalysisState(
        characters=[
            Character(name="Hamlet", aliases=["the Prince"], mentions=5),
            Character(name="Claudius", mentions=2),
            Character(name="King Claudius", aliases=["Claudius"], mentions=3),
            Character(name="Lord Polonius", mentions=1),
        ],
        relationships=[
            Relationship(source="Hamlet", target="Claudius", number_of_interactions=1),
            Relationship(source="the Prince", target="King Claudius", number_of_interactions=2),
            Relationship(source="Claudius", target="King Claudius"),
            Relationship(source="Hamlet", target="Polonius"),
        ],
        interactions=[
            Interaction(characters=["the prince", "claudius"], description="The play scene"),
            Interaction(characters=["Hamlet", "Polonius"], description="Behind the arras"),
        ],
    )


def test_characters_sharing_a_name_collapse():
    state = canonicalize_state(_elsinore_state())

    names = [c.name for c in state.characters]
    assert names == ["Hamlet", "King Claudius", "Lord Polonius"]
    claudius = state.characters[1]
    assert claudius.mentions == 5
    assert "Claudius" in claudius.aliases


def test_references_are_rewritten_and_remerged():
    state = canonicalize_state(_elsinore_state())

    keys = {r.key: r for r in state.relationships}
    # "Hamlet -> Claudius" and "the Prince -> King Claudius" are the same edge
    assert keys[("hamlet", "king claudius")].number_of_interactions == 3
    # Claudius -> King Claudius became a self-relationship
    assert ("king claudius", "king claudius") not in keys
    assert state.interactions[0].characters == ["Hamlet", "King Claudius"]


def test_unambiguous_variant_is_folded_into_aliases():
    state = canonicalize_state(_elsinore_state())

    polonius = next(c for c in state.characters if c.name == "Lord Polonius")
    assert "Polonius" in polonius.aliases
    assert state.interactions[1].characters == ["Hamlet", "Lord Polonius"]
    assert ("hamlet", "lord polonius") in {r.key for r in state.relationships}


def test_ambiguous_variant_is_left_alone():
    state = canonicalize_state(
        AnalysisState(
            characters=[Character(name="Mr Bennet"), Character(name="Mrs Bennet")],
            relationships=[Relationship(source="Bennet", target="Mrs Bennet")],
        )
    )
    assert state.relationships[0].source == "Bennet"
    assert all("Bennet" not in c.aliases for c in state.characters)


def test_canonicalization_is_idempotent():
    once = canonicalize_state(_elsinore_state())
    twice = canonicalize_state(once)
    assert twice.model_dump() == once.model_dump()


def test_names_win_over_aliases_in_name_map():
    name_map = build_name_map(
        [
            Character(name="Laertes", aliases=["the Dane"]),
            Character(name="The Dane"),
        ]
    )
    assert name_map["the dane"] == "The Dane"
    assert name_map["laertes"] == "Laertes"


def test_interaction_naming_one_character_twice_is_dropped():
    state = canonicalize_state(
        AnalysisState(
            characters=[
                Character(name="King Claudius", aliases=["Claudius"]),
                Character(name="Gertrude"),
            ],
            interactions=[
                Interaction(
                    characters=["Claudius", "King Claudius"],
                    description="Claudius prays alone",
                ),
                Interaction(
                    characters=["Claudius", "King Claudius", "Gertrude"],
                    description="The royal couple greets the court",
                ),
            ],
        )
    )

    assert [i.description for i in state.interactions] == ["The royal couple greets the court"]
    assert state.interactions[0].characters == ["King Claudius", "Gertrude"]
    assert canonicalize_state(state).model_dump() == state.model_dump()
