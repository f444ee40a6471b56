"""Command types, default prompt templates, and placeholder substitution."""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping


class CommandType(str, enum.Enum):
    """The three user-invocable prompt commands."""

    SELECTION = "selection"
    CURSOR = "cursor"
    DOCUMENT = "document"


QUERY = "<QUERY>"
SELECTION = "<SELECTION>"
REQUEST = "<REQUEST>"
DOCUMENT = "<DOCUMENT>"

PLACEHOLDERS = (QUERY, SELECTION, REQUEST, DOCUMENT)

COMMAND_NAMES: dict[CommandType, str] = {
    CommandType.SELECTION: "Rewrite selection",
    CommandType.CURSOR: "Generate content at cursor",
    CommandType.DOCUMENT: "Rewrite document",
}

# Label and separator lines are stored without trailing whitespace.
DEFAULT_CURSOR_TEMPLATE = """
You are a helpful AI assistant that can, given a piece of text and a request generate an answer using markdown.
Include headers, lists, checkboxes, and other markdown elements in your answer when it makes sense.

====================================
Examples:

Request:
==================
Generate a shopping list with items for Spagetthi Carbonara
==================
Answer:
# Shopping list

- [ ] Pasta
- [ ] Eggs
- [ ] Parmesan cheese
- [ ] Pancetta
====================================

Request:
==================
Give me a good knock-knock joke
==================
Answer:
Knock, knock. Who's there? Lettuce. Lettuce who? Lettuce in, it's cold out here!
====================================

Text:
Request:
==================
<QUERY>
==================
Answer:"""

DEFAULT_SELECTION_TEMPLATE = """
You are a helpful AI assistant that can, given a piece of text and a request generate an answer using markdown.
====================================
Example:

Text:
==================
# TODO list
- Find out what is the capital of France?
==================
Request:
==================
Add 2 more items to the list with other questions about France
==================
Answer:
# TODO list
- Find out what is the capital of France?
- Find out what is the population of France?
- Find out what is the area of France?
====================================

Text:
==================
<SELECTION>
==================
Request:
==================
<REQUEST>
==================
Answer:"""

DEFAULT_DOCUMENT_TEMPLATE = """
You are a helpful AI assistant who is an expert in rewriting text. \
Given a markdown document and a request, you can generate a new version of the document.

====================================
Example:

Document:
==================
# TODO list
- Find out what is the capital of France?
==================
Request:
==================
Add 2 more items to the list with other questions about France
==================
Answer:
# TODO list
- Find out what is the capital of France?
- Find out what is the population of France?
- Find out what is the area of France?
====================================

Document:
==================
<DOCUMENT>
==================
Request:
==================
<REQUEST>
==================
Answer:"""

DEFAULT_TEMPLATES: Mapping[CommandType, str] = {
    CommandType.SELECTION: DEFAULT_SELECTION_TEMPLATE,
    CommandType.CURSOR: DEFAULT_CURSOR_TEMPLATE,
    CommandType.DOCUMENT: DEFAULT_DOCUMENT_TEMPLATE,
}


def compose(template: str, bindings: Mapping[str, str]) -> str:
    """Substitute bound placeholders in a single pass over the template.

    Bound values are inserted verbatim and never re-scanned, so a value
    that itself looks like a placeholder survives unchanged. Placeholders
    without a binding are left in place.
    """
    tokens = [token for token in PLACEHOLDERS if token in bindings]
    if not tokens:
        return template
    pattern = re.compile("|".join(re.escape(token) for token in tokens))
    return pattern.sub(lambda match: bindings[match.group(0)], template)


def build_bindings(command_type: CommandType | str, text: str, request: str) -> dict[str, str]:
    """Map the command's placeholder contract onto the given text and request."""
    match CommandType(command_type):
        case CommandType.SELECTION:
            return {SELECTION: text, REQUEST: request}
        case CommandType.CURSOR:
            return {QUERY: request}
        case CommandType.DOCUMENT:
            return {DOCUMENT: text, REQUEST: request}


def build_prompt(template: str, command_type: CommandType | str, text: str, request: str) -> str:
    """Compose the final prompt for a command."""
    return compose(template, build_bindings(command_type, text, request))
