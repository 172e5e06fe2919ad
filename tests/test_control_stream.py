import json

from lnprune.control.stream import iter_documents


def test_one_document_per_line():
    lines = ['{"id": 1}\n', "\n", '{"id": 2}\n']
    assert list(iter_documents(lines)) == [{"id": 1}, {"id": 2}]


def test_document_spanning_lines():
    lines = ["{\n", '  "method": "getmanifest",\n', '  "params": {}\n', "}\n", "\n"]
    assert list(iter_documents(lines)) == [{"method": "getmanifest", "params": {}}]


def test_documents_sharing_a_line():
    assert list(iter_documents(['{"a": 1}{"b": 2} [3]\n'])) == [{"a": 1}, {"b": 2}, [3]]


def test_malformed_document_yields_error_and_resumes():
    docs = list(iter_documents(["{not json} trailing\n", '{"ok": true}\n']))
    assert isinstance(docs[0], json.JSONDecodeError)
    assert docs[1:] == [{"ok": True}]


def test_truncated_document_at_eof_yields_error():
    docs = list(iter_documents(['{"id": 1}\n', '{"id": ']))
    assert docs[0] == {"id": 1}
    assert isinstance(docs[1], json.JSONDecodeError)


def test_empty_input():
    assert list(iter_documents([])) == []
    assert list(iter_documents(["\n", "   \n"])) == []


def test_out_of_range_number_yields_error_and_resumes():
    docs = list(iter_documents(['{"id": 1e400, "method": "getmanifest"}\n', '{"id": 7}\n']))
    assert isinstance(docs[0], ValueError)
    assert docs[1:] == [{"id": 7}]


def test_nan_literal_yields_error():
    docs = list(iter_documents(['{"id": NaN}\n']))
    assert len(docs) == 1
    assert isinstance(docs[0], ValueError)


def test_runaway_nesting_yields_error_and_resumes():
    docs = list(iter_documents(["[" * 100000 + "\n", '{"ok": true}\n']))
    assert isinstance(docs[0], RecursionError)
    assert docs[1:] == [{"ok": True}]
