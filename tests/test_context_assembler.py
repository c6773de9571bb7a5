from portfolio_sync.services.context_assembler import (
    BINARY_PLACEHOLDER,
    OTHER_START,
    PRIORITY_END,
    PRIORITY_START,
    assemble,
    has_readable_content,
)
from portfolio_sync.services.portfolio_sync_service import ANALYSIS_INSTRUCTIONS, build_analysis_prompt
from portfolio_sync.services.source_traversal import ContentItem, Provenance


def _item(name, provenance=Provenance.ROOT, text=None, kind="Google Doc", error=None, folder=None):
    return ContentItem(
        id=name, name=name, mime_type="x", provenance=provenance,
        folder_name=folder, text=text, kind=kind, error_reason=error,
    )


def test_priority_section_is_rendered_first_with_markers():
    items = [
        _item("root memo", text="root text"),
        _item("Q2 update", Provenance.PRIORITY, text="priority text"),
        _item("contract", Provenance.OTHER, text="legal text", folder="Legal"),
    ]
    out = assemble("Acme", items)

    assert out.index(PRIORITY_START) < out.index("priority text") < out.index(PRIORITY_END)
    assert out.index(PRIORITY_END) < out.index(OTHER_START) < out.index("root text")
    assert "MOST RECENT AND MOST IMPORTANT" in PRIORITY_START
    assert '"Acme"' in out
    assert "[other-subfolder:Legal]" in out


def test_binary_and_unreadable_placeholders():
    items = [
        _item("Deck.pdf", kind="PDF"),
        _item("Broken", error="403 forbidden"),
    ]
    out = assemble("Acme", items)
    assert f"--- Deck.pdf (PDF) [root] ---\n{BINARY_PLACEHOLDER}" in out
    assert "[unreadable: 403 forbidden]" in out


def test_no_priority_section_without_priority_items():
    out = assemble("Acme", [_item("memo", text="hello")])
    assert PRIORITY_START not in out
    assert OTHER_START in out


def test_budget_drops_tail_of_other_group_first():
    items = [
        _item("p1", Provenance.PRIORITY, text="P" * 200),
        _item("o1", text="A" * 200),
        _item("o2", text="B" * 200),
    ]
    full = assemble("Acme", items)
    out = assemble("Acme", items, max_chars=len(full) - 50)

    assert len(out) <= len(full) - 50
    assert "P" * 200 in out
    assert "A" * 200 in out
    assert "B" * 200 not in out
    assert "1 document(s) omitted" in out


def test_unbounded_keeps_everything():
    items = [_item(f"o{n}", text="z" * 100) for n in range(20)]
    out = assemble("Acme", items)
    assert out.count("z" * 100) == 20


def test_readable_content_threshold():
    assert not has_readable_content([_item("a", text="short"), _item("b", kind="PDF")])
    assert has_readable_content([_item("a", text="a long enough piece of text")])


def test_analysis_prompt_wraps_context_within_budget():
    items = [_item(f"o{n}", text="y" * 500) for n in range(10)]
    prompt = build_analysis_prompt("Acme", items, max_chars=3000)
    assert prompt.startswith(ANALYSIS_INSTRUCTIONS)
    assert len(prompt) <= 3000
    assert '"keyMetrics"' in prompt
