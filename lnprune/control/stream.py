"""Reader for a text stream of self-delimiting JSON documents."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from typing import Any, Union

from lnprune.rpc.serialization import STRICT_DECODER

# JSONDecodeError for bad syntax, ValueError for a refused number,
# RecursionError for nesting deeper than the decoder can follow.
DocumentError = Union[ValueError, RecursionError]


def iter_documents(lines: Iterable[str]) -> Iterator[Any | DocumentError]:
    """
    Yield each JSON value found in the stream, or the error for a
    malformed one.

    Documents may span several lines or share one. After a malformed
    document the rest of its line is dropped and reading resumes on the
    next line.
    """
    buffer = ""
    for line in lines:
        buffer += line
        while True:
            text = buffer.lstrip()
            if not text:
                buffer = ""
                break
            try:
                value, end = STRICT_DECODER.raw_decode(text)
            except json.JSONDecodeError as exc:
                if exc.pos >= len(text.rstrip()):
                    # ran out of input mid-document
                    buffer = text
                    break
                buffer = ""
                yield exc
                break
            except (ValueError, RecursionError) as exc:
                buffer = ""
                yield exc
                break
            buffer = text[end:]
            yield value
    text = buffer.strip()
    if text:
        try:
            yield STRICT_DECODER.decode(text)
        except (ValueError, RecursionError) as exc:
            yield exc
