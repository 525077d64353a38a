# tests/test_sentences.py

from shared.helper.HelperSentences import split_to_sentences, window_around


def test_split_offsets_point_into_the_text():
    text = "Hello world. How are you?  Fine"
    spans = split_to_sentences(text)

    assert [s.text for s in spans] == ["Hello world.", "How are you?", "Fine"]
    for span in spans:
        assert text[span.start:span.end] == span.text


def test_split_handles_ellipsis_and_repeated_terminators():
    spans = split_to_sentences("Wait… ok?! done")
    assert [s.text for s in spans] == ["Wait…", "ok?!", "done"]


def test_split_of_blank_text_is_empty():
    assert split_to_sentences("   ") == []
    assert split_to_sentences("") == []


def test_window_offsets_locate_the_sentence_in_the_trimmed_preview():
    text = "   abc def   "
    window = window_around(text, 7, 10, pad=100)

    assert window.preview == "abc def"
    assert window.preview[window.rel_start:window.rel_end] == "def"


def test_window_is_clipped_to_the_pad():
    text = "x" * 50 + "TARGET." + "y" * 50
    window = window_around(text, 50, 57, pad=10)

    assert window.preview == "x" * 10 + "TARGET." + "y" * 10
    assert window.preview[window.rel_start:window.rel_end] == "TARGET."


def test_window_offsets_stay_within_bounds():
    text = "Short."
    window = window_around(text, 0, 100, pad=5)
    assert 0 <= window.rel_start <= window.rel_end <= len(window.preview)
