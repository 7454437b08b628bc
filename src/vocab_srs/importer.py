"""Word-list import for various file formats."""
import csv
import json
from pathlib import Path

from vocab_srs.errors import InvalidState, NotFound

TEXT_SEPARATORS = ("\t", " - ", ";")


def _entry(text: str, definition: str = "", phonetic: str = "", word_id: str = None) -> dict:
    text = text.strip()
    return {
        "word_id": str(word_id or text).strip().lower(),
        "text": text,
        "definition": definition.strip(),
        "phonetic": phonetic.strip(),
    }


def _parse_line(line: str) -> dict:
    for sep in TEXT_SEPARATORS:
        if sep in line:
            text, definition = line.split(sep, 1)
            return _entry(text, definition)
    return _entry(line)


def _from_items(items) -> list[dict]:
    if isinstance(items, dict):
        items = items.get("words", [])
    if not isinstance(items, list):
        raise InvalidState(f"Expected a list of words, got {type(items).__name__}")
    entries = []
    for item in items:
        if isinstance(item, str):
            entries.append(_entry(item))
        elif isinstance(item, dict) and item.get("word"):
            entries.append(_entry(
                str(item["word"]),
                str(item.get("definition", "")),
                str(item.get("phonetic", "")),
                item.get("id"),
            ))
        else:
            raise InvalidState(f"Unrecognized word entry: {item!r}")
    return entries


def read_word_list(file_path: str) -> list[dict]:
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidState(f"Malformed word list {path.name}: {e}") from e
        return _from_items(data)
    elif suffix in (".yaml", ".yml"):
        import yaml
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise InvalidState(f"Malformed word list {path.name}: {e}") from e
        return _from_items(data or [])
    elif suffix == ".csv":
        with path.open(newline="", encoding="utf-8") as f:
            try:
                return [
                    _entry(
                        row["word"], row.get("definition") or "", row.get("phonetic") or "", row.get("id"),
                    )
                    for row in csv.DictReader(f)
                    if row.get("word")
                ]
            except csv.Error as e:
                raise InvalidState(f"Malformed word list {path.name}: {e}") from e
    else:
        # Plain text, one word per line
        lines = path.read_text(encoding="utf-8").splitlines()
        return [_parse_line(line) for line in lines if line.strip() and not line.startswith("#")]


def import_words(engine, user_id: str, file_path: str) -> dict:
    """Add every word in a list file for a user. Already tracked words are skipped."""
    entries = read_word_list(file_path)
    try:
        known = {item.word_id for item in engine.get_review_schedule(user_id)}
    except NotFound:
        known = set()
    added = 0
    for e in entries:
        if e["word_id"] in known:
            continue
        engine.on_word_added(user_id, e["word_id"], e["text"], e["definition"], e["phonetic"])
        known.add(e["word_id"])
        added += 1
    return {"filename": Path(file_path).name, "added": added, "skipped": len(entries) - added}
