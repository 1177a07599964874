import json
import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from workflow_sage.workflow.extraction import (
    extract,
    has_required_key_order,
    is_complete,
    iter_object_spans,
)


def _record(**overrides) -> dict:
    record = {
        "title": "Invoice Approval",
        "start_event": "Invoice received by email",
        "end_event": "Payment scheduled",
        "steps": [
            {"id": "s1", "description": "Log invoice", "actor": "p1", "system": "sys1"},
            {"id": "s2", "description": "Approve invoice", "actor": "p2"},
        ],
        "people": [
            {"id": "p1", "name": "AP Clerk", "type": "internal"},
            {"id": "p2", "name": "Finance Manager", "type": "Internal"},
        ],
        "systems": [{"id": "sys1", "name": "QuickBooks", "type": "external"}],
        "pain_points": ["Manual data entry"],
    }
    record.update(overrides)
    return record


class CompletionGateTests(unittest.TestCase):
    def test_all_markers_present(self) -> None:
        self.assertTrue(is_complete(json.dumps(_record())))

    def test_missing_marker(self) -> None:
        record = _record()
        del record["pain_points"]
        self.assertFalse(is_complete(json.dumps(record)))

    def test_markers_without_json_still_pass_the_gate(self) -> None:
        text = '"title" "start_event" "end_event" "steps" "people" "systems" "pain_points"'
        self.assertTrue(is_complete(text))
        self.assertIsNone(extract(text))


class ExtractTests(unittest.TestCase):
    def test_record_embedded_in_prose(self) -> None:
        text = (
            "Here is the summary of your workflow:\n\n```json\n"
            + json.dumps(_record(), indent=2)
            + "\n```\n\nDoes this look right?"
        )
        record = extract(text)

        self.assertIsNotNone(record)
        self.assertEqual(record.title, "Invoice Approval")
        self.assertEqual([s.id for s in record.steps], ["s1", "s2"])
        self.assertEqual(record.people[1].type, "internal")
        self.assertEqual(record.pain_points, ["Manual data entry"])

    def test_invalid_json_returns_none(self) -> None:
        text = json.dumps(_record()).replace('"Log invoice"', "Log invoice")
        self.assertTrue(is_complete(text))
        self.assertIsNone(extract(text))

    def test_keys_out_of_order_rejected(self) -> None:
        record = _record()
        reordered = {"start_event": record.pop("start_event"), **record}
        text = json.dumps(reordered)

        self.assertTrue(is_complete(text))
        self.assertIsNone(extract(text))

    def test_extra_keys_between_required_keys_allowed(self) -> None:
        record = _record()
        items = list(record.items())
        items.insert(1, ("summary", "Approves supplier invoices"))
        text = json.dumps(dict(items))

        self.assertIsNotNone(extract(text))

    def test_schema_violation_returns_none(self) -> None:
        text = json.dumps(_record(steps="Log it, then approve it"))
        self.assertIsNone(extract(text))

    def test_numeric_ids_become_text(self) -> None:
        steps = [{"id": 1, "description": "Log invoice", "actor": 7}, {"id": 2}]
        people = [{"id": 7, "name": "AP Clerk", "type": "internal"}]
        record = extract(json.dumps(_record(steps=steps, people=people)))

        self.assertIsNotNone(record)
        self.assertEqual([s.id for s in record.steps], ["1", "2"])
        self.assertEqual(record.steps[0].actor, "7")
        self.assertEqual(record.people[0].id, "7")

    def test_unresolved_party_type_is_tolerated(self) -> None:
        people = [
            {"id": "p1", "name": "AP Clerk", "type": "internal/external"},
            {"id": "p2", "name": "Supplier", "type": "External party"},
            {"id": "p3", "name": "Auditor", "type": "contractor"},
        ]
        record = extract(json.dumps(_record(people=people)))

        self.assertIsNotNone(record)
        self.assertEqual([p.type for p in record.people], [None, "external", None])

    def test_braces_inside_strings_do_not_break_span(self) -> None:
        text = "Summary: " + json.dumps(_record(title='Invoice {draft} "v2"'))
        record = extract(text)

        self.assertIsNotNone(record)
        self.assertEqual(record.title, 'Invoice {draft} "v2"')

    def test_earlier_invalid_candidate_falls_through_to_later_one(self) -> None:
        broken = json.dumps(_record()).replace('"Payment scheduled"', "Payment scheduled")
        valid = json.dumps(_record(title="Second Attempt"))
        text = f"First try: {broken}\n\nCorrected: {valid}"

        record = extract(text)

        self.assertIsNotNone(record)
        self.assertEqual(record.title, "Second Attempt")

    def test_first_valid_candidate_wins(self) -> None:
        text = json.dumps(_record(title="First")) + " and " + json.dumps(_record(title="Second"))
        self.assertEqual(extract(text).title, "First")

    def test_no_object(self) -> None:
        self.assertIsNone(extract("What happens after the invoice is approved?"))


class ScannerTests(unittest.TestCase):
    def test_spans_in_start_order_with_nesting(self) -> None:
        text = 'a {"x": {"y": 1}} b {"z": 2}'
        spans = [text[s:e] for s, e in iter_object_spans(text)]
        self.assertEqual(spans, ['{"x": {"y": 1}}', '{"y": 1}', '{"z": 2}'])

    def test_unbalanced_opening_skipped(self) -> None:
        text = '{ unterminated {"ok": true}'
        spans = [text[s:e] for s, e in iter_object_spans(text)]
        self.assertEqual(spans, ['{"ok": true}'])

    def test_key_order_check(self) -> None:
        self.assertTrue(has_required_key_order(_record()))
        self.assertFalse(has_required_key_order({"title": "x"}))


if __name__ == "__main__":
    unittest.main()
