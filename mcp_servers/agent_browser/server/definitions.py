"""Tool schema definitions (MCP ``tools/list`` payload)."""

from __future__ import annotations

from typing import Any

_ELEMENT = {
    "type": "string",
    "description": "Human-readable element description used to obtain permission to interact with the element",
}
_REF = {"type": "string", "description": "Exact target element reference from the page snapshot"}


def _schema(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": properties or {},
        "additionalProperties": False,
    }
    if required:
        schema["required"] = required
    return schema


TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "browser_navigate",
        "description": "Navigate to a URL",
        "inputSchema": _schema({"url": {"type": "string", "description": "The URL to navigate to"}}, ["url"]),
    },
    {
        "name": "browser_navigate_back",
        "description": "Go back to the previous page",
        "inputSchema": _schema(),
    },
    {
        "name": "browser_navigate_forward",
        "description": "Go forward to the next page",
        "inputSchema": _schema(),
    },
    {
        "name": "browser_snapshot",
        "description": """Capture accessibility snapshot of the current page, this is better than screenshot.
Large pages can be narrowed with the filter parameters.""",
        "inputSchema": _schema(
            {
                "maxElements": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Maximum number of elements to include in the snapshot",
                },
                "elementTypes": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": 'Only include these roles, e.g. ["button", "textbox", "link", "heading"]',
                },
                "skipLargeTexts": {
                    "type": "boolean",
                    "description": "Skip text nodes with large content and shorten long names",
                },
            }
        ),
    },
    {
        "name": "browser_click",
        "description": "Perform click on a web page",
        "inputSchema": _schema(
            {
                "element": _ELEMENT,
                "ref": _REF,
                "doubleClick": {"type": "boolean", "description": "Whether to perform a double click instead of a single click"},
                "button": {
                    "type": "string",
                    "enum": ["left", "right", "middle"],
                    "description": "Button to click, defaults to left",
                },
                "modifiers": {
                    "type": "array",
                    "items": {"type": "string", "enum": ["Alt", "Control", "Meta", "Shift"]},
                    "description": "Modifier keys to press",
                },
            },
            ["element", "ref"],
        ),
    },
    {
        "name": "browser_type",
        "description": "Type text into editable element",
        "inputSchema": _schema(
            {
                "element": _ELEMENT,
                "ref": _REF,
                "text": {"type": "string", "description": "Text to type into the element"},
                "submit": {"type": "boolean", "description": "Whether to submit entered text (press Enter after)"},
                "slowly": {
                    "type": "boolean",
                    "description": "Whether to type one character at a time. Useful for triggering key handlers in the page.",
                },
            },
            ["element", "ref", "text"],
        ),
    },
    {
        "name": "browser_press_key",
        "description": "Press a key on the keyboard",
        "inputSchema": _schema(
            {
                "key": {
                    "type": "string",
                    "description": "Name of the key to press or a character to generate, such as `ArrowLeft` or `a`",
                }
            },
            ["key"],
        ),
    },
    {
        "name": "browser_take_screenshot",
        "description": "Take a screenshot of the current page. You can't perform actions based on the screenshot, use browser_snapshot for actions.",
        "inputSchema": _schema(
            {
                "raw": {"type": "boolean", "description": "Whether to return without compression (in PNG format). Default is false, which returns a JPEG image."},
                "filename": {"type": "string", "description": "File name to save the screenshot to. Defaults to `page-{timestamp}.{png|jpeg}`."},
                "element": _ELEMENT,
                "ref": _REF,
                "fullPage": {"type": "boolean", "description": "When true, takes a screenshot of the full scrollable page"},
            }
        ),
    },
    {
        "name": "browser_evaluate",
        "description": "Evaluate JavaScript expression on page or element",
        "inputSchema": _schema(
            {
                "function": {
                    "type": "string",
                    "description": "() => { /* code */ } or (element) => { /* code */ } when element is provided",
                },
                "element": _ELEMENT,
                "ref": _REF,
                "maxLength": {"type": "integer", "description": "Maximum length of result to return (default: 10000 characters)"},
                "returnSummary": {"type": "boolean", "description": "Return a summary if result is too large (default: false)"},
            },
            ["function"],
        ),
    },
    {
        "name": "browser_console_messages",
        "description": "Returns all console messages",
        "inputSchema": _schema(
            {
                "limit": {"type": "integer", "description": "Maximum number of console messages to return (default: 100)"},
                "offset": {"type": "integer", "description": "Number of messages to skip for pagination (default: 0)"},
            }
        ),
    },
    {
        "name": "browser_network_requests",
        "description": "Returns all network requests since loading the page",
        "inputSchema": _schema(
            {
                "limit": {"type": "integer", "description": "Maximum number of requests to return (default: 100)"},
                "offset": {"type": "integer", "description": "Number of requests to skip for pagination (default: 0)"},
            }
        ),
    },
    {
        "name": "browser_pdf_save",
        "description": "Save page as PDF using browser print functionality with full page support and customizable options",
        "inputSchema": _schema(
            {
                "filename": {"type": "string", "description": "File name to save the pdf to. Defaults to `page-{timestamp}.pdf`."},
                "format": {
                    "type": "string",
                    "enum": ["Letter", "Legal", "Tabloid", "Ledger", "A0", "A1", "A2", "A3", "A4", "A5", "A6"],
                    "description": "Paper format. Defaults to A4.",
                },
                "landscape": {"type": "boolean", "description": "Paper orientation. Defaults to false (portrait)."},
                "printBackground": {"type": "boolean", "description": "Print background graphics. Defaults to false."},
                "scale": {
                    "type": "number",
                    "minimum": 0.1,
                    "maximum": 2,
                    "description": "Scale of the webpage rendering. Defaults to 1.",
                },
                "margin": {
                    "type": "object",
                    "properties": {
                        side: {"type": "string", "description": f"{side.capitalize()} margin, accepts values labeled with units."}
                        for side in ("top", "bottom", "left", "right")
                    },
                    "description": "Paper margins, defaults to none.",
                },
                "width": {"type": "string", "description": "Paper width, accepts values labeled with units."},
                "height": {"type": "string", "description": "Paper height, accepts values labeled with units."},
                "preferCSSPageSize": {
                    "type": "boolean",
                    "description": "Give any CSS @page size declared in the page priority over width/height/format.",
                },
                "emulateMedia": {
                    "type": "string",
                    "enum": ["screen", "print"],
                    "description": "Changes the CSS media type of the page. Defaults to print.",
                },
                "outline": {"type": "boolean", "description": "Whether to embed the document outline into the PDF."},
                "tagged": {"type": "boolean", "description": "Generate tagged (accessible) PDF."},
            }
        ),
    },
    {
        "name": "browser_handle_dialog",
        "description": "Handle a dialog",
        "inputSchema": _schema(
            {
                "accept": {"type": "boolean", "description": "Whether to accept the dialog."},
                "promptText": {"type": "string", "description": "The text of the prompt in case of a prompt dialog."},
            },
            ["accept"],
        ),
    },
    {
        "name": "browser_file_upload",
        "description": "Upload one or multiple files",
        "inputSchema": _schema(
            {
                "paths": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "The absolute paths to the files to upload. Can be a single file or multiple files. Empty list cancels the file chooser.",
                }
            },
            ["paths"],
        ),
    },
    {
        "name": "browser_tabs",
        "description": "List, create, close, or select a browser tab.",
        "inputSchema": _schema(
            {
                "action": {
                    "type": "string",
                    "enum": ["list", "new", "close", "select"],
                    "description": "Operation to perform",
                },
                "index": {"type": "integer", "description": "Tab index, used for close/select. If omitted for close, current tab is closed."},
                "url": {"type": "string", "description": "URL to open in the new tab (action=new)"},
            },
            ["action"],
        ),
    },
    {
        "name": "browser_wait_for",
        "description": "Wait for text to appear or disappear or a specified time to pass",
        "inputSchema": _schema(
            {
                "time": {"type": "number", "description": "The time to wait in seconds"},
                "text": {"type": "string", "description": "The text to wait for"},
                "textGone": {"type": "string", "description": "The text to wait for to disappear"},
            }
        ),
    },
]

TOOL_DEFINITIONS_BY_NAME: dict[str, dict[str, Any]] = {d["name"]: d for d in TOOL_DEFINITIONS}

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list,),
    "object": (dict,),
}


def validate_arguments(schema: dict[str, Any], arguments: dict[str, Any]) -> str | None:
    """Shallow check of required keys, property types and enums. Returns an error message or None."""
    if not isinstance(arguments, dict):
        return "Arguments must be an object"
    properties = schema.get("properties") or {}
    for key in schema.get("required") or []:
        if key not in arguments:
            return f"Missing required argument: {key}"
    for key, value in arguments.items():
        prop = properties.get(key)
        if prop is None:
            if schema.get("additionalProperties") is False:
                return f"Unknown argument: {key}"
            continue
        if value is None:
            continue
        expected = _JSON_TYPES.get(prop.get("type", ""))
        if expected is not None:
            is_bool = isinstance(value, bool)
            if not isinstance(value, expected) or (is_bool and prop["type"] != "boolean"):
                return f"Argument {key} must be of type {prop['type']}"
        enum = prop.get("enum")
        if enum is not None and value not in enum:
            return f"Argument {key} must be one of {', '.join(map(str, enum))}"
    return None


__all__ = ["TOOL_DEFINITIONS", "TOOL_DEFINITIONS_BY_NAME", "validate_arguments"]
