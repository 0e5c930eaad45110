import itertools

from smiletrack.aggregate import NO_FACES_TEXT, TallyBoard, aggregate, format_tally
from smiletrack.models import ClassificationResult, FrameTally


def _results():
    return [
        ClassificationResult(backend="CNN", smiling=True),
        ClassificationResult(backend="NET", smiling=False),
        ClassificationResult(backend="CNN", smiling=False),
        ClassificationResult(backend="NET", smiling=True),
        ClassificationResult(backend="CNN", smiling=True),
    ]


def test_aggregate_counts_per_backend():
    t = aggregate(_results())
    assert t.get("CNN").smiling == 2 and t.get("CNN").total == 3
    assert t.get("NET").smiling == 1 and t.get("NET").total == 2
    assert t.get("CNN").not_smiling == 1


def test_aggregate_is_order_independent():
    expected = aggregate(_results())
    for perm in itertools.permutations(_results()):
        assert aggregate(perm) == expected


def test_aggregate_seeds_named_backends():
    t = aggregate([], backends=["CNN", "NET"])
    assert set(t.counts) == {"CNN", "NET"}
    assert all(c.smiling == 0 and c.total == 0 for c in t.counts.values())
    assert t.faces == 0


def test_format_tally():
    t = aggregate(_results()[:2])
    assert format_tally(t) == "CNN: 1 😃 0 😐   NET: 0 😃 1 😐"
    assert format_tally(t, plain=True) == "CNN: 1 smile 0 neutral   NET: 0 smile 1 neutral"
    assert format_tally(None) == NO_FACES_TEXT
    assert format_tally(aggregate([], ["CNN"])) == NO_FACES_TEXT


def test_board_replaces_previous_tally():
    board = TallyBoard()
    assert board.current is None
    first = aggregate(_results())
    second = aggregate([ClassificationResult(backend="CNN", smiling=False)])
    board.publish(first)
    board.publish(second)
    assert board.current == second
    assert board.current.get("CNN").total == 1
    assert board.current.get("NET") == FrameTally().get("NET")
