"""Mock GROQ — confidence heuristics and verification bookkeeping."""

from ganamos.mocks.groq import MockGroqStore, assess_fix


def test_similar_images_score_six():
    confidence, _ = assess_fix("a" * 100, "a" * 98, "fixed the bench")
    assert confidence == 6


def test_some_difference_scores_seven():
    confidence, _ = assess_fix("a" * 100, "a" * 90, "looks better")
    assert confidence == 7


def test_clear_difference_scores_eight():
    confidence, _ = assess_fix("a" * 100, "a" * 50, "looks better")
    assert confidence == 8


def test_fix_keyword_lifts_to_nine():
    confidence, reasoning = assess_fix("a" * 100, "a" * 90, "Repaint and CLEAN the wall")
    assert confidence == 9
    assert "substantial improvement" in reasoning


def test_keyword_does_not_lift_similar_images():
    confidence, _ = assess_fix("a" * 100, "a" * 99, "clean")
    assert confidence == 6


def test_empty_images_count_as_similar():
    confidence, _ = assess_fix("", "", "")
    assert confidence == 6


def test_store_assigns_sequential_ids_and_truncates_previews():
    store = MockGroqStore()
    first = store.verify_fix("x" * 500, "y" * 10, "desc", "title")
    second = store.verify_fix("", "", "", "")
    assert first.verification_id == "groq-verify-1"
    assert second.verification_id == "groq-verify-2"
    assert first.before_image.endswith("...[truncated]")
    assert len(store.all()) == 2
    store.reset()
    assert store.all() == []
