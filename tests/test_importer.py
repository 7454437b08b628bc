import json

import pytest

from vocab_srs.errors import InvalidState
from vocab_srs.importer import import_words, read_word_list


def test_read_text_with_separators(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text(
        "# animals\n"
        "Cat\ta small feline\n"
        "dog - a loyal canine\n"
        "owl;a night bird\n"
        "\n"
        "yak\n",
        encoding="utf-8",
    )
    entries = read_word_list(str(path))
    assert [e["word_id"] for e in entries] == ["cat", "dog", "owl", "yak"]
    assert entries[0]["text"] == "Cat"
    assert entries[1]["definition"] == "a loyal canine"
    assert entries[3]["definition"] == ""


def test_read_csv(tmp_path):
    path = tmp_path / "words.csv"
    path.write_text("word,definition,phonetic\ncat,a feline,/kæt/\n,skipped,\n", encoding="utf-8")
    entries = read_word_list(str(path))
    assert entries == [{"word_id": "cat", "text": "cat", "definition": "a feline", "phonetic": "/kæt/"}]


def test_read_json_with_ids(tmp_path):
    path = tmp_path / "words.json"
    path.write_text(json.dumps({"words": [
        {"word": "Cat", "definition": "a feline", "id": 17},
        "dog",
    ]}), encoding="utf-8")
    entries = read_word_list(str(path))
    assert entries[0]["word_id"] == "17"
    assert entries[1]["word_id"] == "dog"


def test_read_yaml(tmp_path):
    path = tmp_path / "words.yaml"
    path.write_text("- word: cat\n  definition: a feline\n- dog\n", encoding="utf-8")
    entries = read_word_list(str(path))
    assert [e["word_id"] for e in entries] == ["cat", "dog"]
    assert entries[0]["definition"] == "a feline"


def test_bad_entry_raises(tmp_path):
    path = tmp_path / "words.json"
    path.write_text(json.dumps([{"definition": "no word"}]), encoding="utf-8")
    with pytest.raises(InvalidState):
        read_word_list(str(path))


def test_import_skips_known_words(engine, tmp_path):
    engine.on_word_added("u1", "cat", "cat", "a feline")
    path = tmp_path / "words.txt"
    path.write_text("cat\ta feline\ndog\ta canine\ndog\ta canine\n", encoding="utf-8")
    summary = import_words(engine, "u1", str(path))
    assert summary == {"filename": "words.txt", "added": 1, "skipped": 2}
    assert [item.word_id for item in engine.get_review_schedule("u1")] == ["cat", "dog"]


def test_import_for_new_user(engine, tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("cat\n", encoding="utf-8")
    assert import_words(engine, "fresh", str(path))["added"] == 1
    assert engine.get_daily_task("fresh").word_ids == ["cat"]


@pytest.mark.parametrize("name, content", [
    ("words.json", '{"words": ["cat",'),
    ("words.yaml", "words: [cat, dog\n"),
    ("words.yml", "- cat\n- {word: dog\n"),
    ("words.json", "42"),
])
def test_malformed_word_list_raises_invalid_state(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    with pytest.raises(InvalidState) as exc:
        read_word_list(str(path))
    assert exc.value.http_status == 400
