from portfolio_sync.services.content_reader import read_content, read_items
from portfolio_sync.services.source_traversal import ContentItem, Provenance
from portfolio_sync.utils.timeout_handler import Deadline
from tests.conftest import FakeContentSource

GOOGLE_SHEET = "application/vnd.google-apps.spreadsheet"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _item(item_id: str, mime_type: str = "application/vnd.google-apps.document") -> ContentItem:
    return ContentItem(id=item_id, name=f"file {item_id}", mime_type=mime_type, provenance=Provenance.ROOT)


def test_google_doc_is_exported_as_text():
    source = FakeContentSource()
    source.texts["d"] = "Board minutes"
    result = read_content(source, _item("d"))
    assert (result.text, result.kind, result.error_reason) == ("Board minutes", "Google Doc", None)


def test_google_sheet_is_exported_as_csv():
    source = FakeContentSource()
    source.texts["s"] = "a,b\n1,2"
    result = read_content(source, _item("s", GOOGLE_SHEET))
    assert result.kind == "Google Sheet"
    assert result.text == "a,b\n1,2"


def test_textual_files_are_fetched_verbatim():
    source = FakeContentSource()
    source.blobs["t"] = "café metrics".encode("utf-8")
    result = read_content(source, _item("t", "text/plain"))
    assert result.text == "café metrics"
    assert result.kind == "Text"


def test_invalid_utf8_is_replaced_not_raised():
    source = FakeContentSource()
    source.blobs["t"] = b"ok \xff\xfe"
    result = read_content(source, _item("t", "text/csv"))
    assert result.text.startswith("ok ")
    assert result.error_reason is None


def test_binary_kinds_are_never_decoded():
    source = FakeContentSource()
    for mime, kind in (("application/pdf", "PDF"), (DOCX, "Word"), ("image/png", "Image"), ("video/mp4", "video/mp4")):
        result = read_content(source, _item("b", mime))
        assert result.text is None
        assert result.kind == kind
    assert source.fetched == []


def test_text_is_truncated():
    source = FakeContentSource()
    source.texts["d"] = "x" * 10_000
    assert len(read_content(source, _item("d")).text) == 4000
    assert len(read_content(source, _item("d"), max_chars=8000).text) == 8000


def test_fetch_error_becomes_reason():
    source = FakeContentSource()
    source.fail_ids.add("d")
    result = read_content(source, _item("d"))
    assert result.text is None
    assert "export of d failed" in result.error_reason


def test_one_failing_item_does_not_stop_siblings():
    source = FakeContentSource()
    items = [_item(str(n)) for n in range(1, 6)]
    for n in range(1, 6):
        source.texts[str(n)] = f"text {n}"
    source.fail_ids.add("3")

    read, errors = read_items(source, items)

    assert len(read) == 5
    assert [i.text for i in read if i.text] == ["text 1", "text 2", "text 4", "text 5"]
    assert len(errors) == 1
    assert errors[0].item == "file 3"
    assert errors[0].stage == "read"
    assert source.fetched == ["1", "2", "3", "4", "5"]


def test_expired_deadline_stops_reading_and_records_remainder():
    ticks = iter([0.0, 0.0, 0.5, 2.0, 2.0, 2.0])
    deadline = Deadline(1.0, clock=lambda: next(ticks))
    source = FakeContentSource()
    items = [_item(str(n)) for n in range(1, 4)]

    read, errors = read_items(source, items, deadline=deadline)

    assert [i.id for i in read] == ["1", "2"]
    assert errors[-1].stage == "deadline"
    assert errors[-1].item == "file 3"
