"""Built-in Lark OpenAPI operations offered to the model.

Every operation takes up to three argument objects: ``path`` fills the
``{placeholders}`` of the request path, ``params`` becomes the query string
and ``data`` the JSON body.
"""

from __future__ import annotations

from typing import Any

from larkbot.tools.catalog import ToolDescriptor


def _section(description: str, properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    section: dict[str, Any] = {"type": "object", "description": description, "properties": properties}
    if required:
        section["required"] = required
    return section


def _string(description: str) -> dict[str, str]:
    return {"type": "string", "description": description}


def default_descriptors() -> list[ToolDescriptor]:
    """Return the default catalog of Lark operations."""

    return [
        ToolDescriptor(
            name="im.v1.message.create",
            description="Send a message to a Lark chat. content must be a JSON string, e.g. '{\"text\":\"hi\"}'.",
            http_method="POST",
            path="/open-apis/im/v1/messages",
            schema={
                "type": "object",
                "properties": {
                    "params": _section(
                        "Query parameters",
                        {"receive_id_type": _string("Type of receive_id: chat_id, open_id, user_id or email")},
                        ["receive_id_type"],
                    ),
                    "data": _section(
                        "Message body",
                        {
                            "receive_id": _string("Recipient id matching receive_id_type"),
                            "msg_type": _string("Message type, usually text"),
                            "content": _string("JSON-encoded message content"),
                        },
                        ["receive_id", "msg_type", "content"],
                    ),
                },
                "required": ["params", "data"],
            },
        ),
        ToolDescriptor(
            name="im.v1.message.list",
            description="List recent messages in a Lark chat.",
            http_method="GET",
            path="/open-apis/im/v1/messages",
            schema={
                "type": "object",
                "properties": {
                    "params": _section(
                        "Query parameters",
                        {
                            "container_id_type": _string("Always chat"),
                            "container_id": _string("The chat id"),
                            "page_size": {"type": "integer", "description": "Number of messages (max 50)"},
                        },
                        ["container_id_type", "container_id"],
                    ),
                },
                "required": ["params"],
            },
        ),
        ToolDescriptor(
            name="im.v1.chat.get",
            description="Get information about a Lark chat.",
            http_method="GET",
            path="/open-apis/im/v1/chats/{chat_id}",
            schema={
                "type": "object",
                "properties": {"path": _section("Path parameters", {"chat_id": _string("The chat id")}, ["chat_id"])},
                "required": ["path"],
            },
        ),
        ToolDescriptor(
            name="im.v1.chat.create",
            description="Create a new Lark group chat.",
            http_method="POST",
            path="/open-apis/im/v1/chats",
            schema={
                "type": "object",
                "properties": {
                    "params": _section("Query parameters", {"user_id_type": _string("open_id, user_id or union_id")}),
                    "data": _section(
                        "Chat body",
                        {
                            "name": _string("Name of the group chat"),
                            "user_id_list": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "Members to add",
                            },
                        },
                        ["name"],
                    ),
                },
                "required": ["data"],
            },
        ),
        ToolDescriptor(
            name="contact.v3.user.get",
            description="Get information about a Lark user.",
            http_method="GET",
            path="/open-apis/contact/v3/users/{user_id}",
            schema={
                "type": "object",
                "properties": {
                    "path": _section("Path parameters", {"user_id": _string("The user id")}, ["user_id"]),
                    "params": _section("Query parameters", {"user_id_type": _string("open_id, user_id or union_id")}),
                },
                "required": ["path"],
            },
        ),
        ToolDescriptor(
            name="docx.v1.document.rawContent",
            description="Get the plain-text content of a Lark document.",
            http_method="GET",
            path="/open-apis/docx/v1/documents/{document_id}/raw_content",
            schema={
                "type": "object",
                "properties": {
                    "path": _section("Path parameters", {"document_id": _string("The document id")}, ["document_id"]),
                },
                "required": ["path"],
            },
        ),
        ToolDescriptor(
            name="bitable.v1.appTableRecord.search",
            description="Search records in a Lark Bitable table.",
            http_method="POST",
            path="/open-apis/bitable/v1/apps/{app_token}/tables/{table_id}/records/search",
            schema={
                "type": "object",
                "properties": {
                    "path": _section(
                        "Path parameters",
                        {"app_token": _string("The Bitable app token"), "table_id": _string("The table id")},
                        ["app_token", "table_id"],
                    ),
                    "data": _section(
                        "Search body",
                        {"filter": {"type": "object", "description": "Filter conditions"}},
                    ),
                },
                "required": ["path"],
            },
        ),
        ToolDescriptor(
            name="bitable.v1.appTableRecord.create",
            description="Create a record in a Lark Bitable table.",
            http_method="POST",
            path="/open-apis/bitable/v1/apps/{app_token}/tables/{table_id}/records",
            schema={
                "type": "object",
                "properties": {
                    "path": _section(
                        "Path parameters",
                        {"app_token": _string("The Bitable app token"), "table_id": _string("The table id")},
                        ["app_token", "table_id"],
                    ),
                    "data": _section(
                        "Record body",
                        {"fields": {"type": "object", "description": "Field values keyed by field name"}},
                        ["fields"],
                    ),
                },
                "required": ["path", "data"],
            },
        ),
        ToolDescriptor(
            name="bitable.v1.appTableRecord.update",
            description="Update a record in a Lark Bitable table.",
            http_method="PUT",
            path="/open-apis/bitable/v1/apps/{app_token}/tables/{table_id}/records/{record_id}",
            schema={
                "type": "object",
                "properties": {
                    "path": _section(
                        "Path parameters",
                        {
                            "app_token": _string("The Bitable app token"),
                            "table_id": _string("The table id"),
                            "record_id": _string("The record id"),
                        },
                        ["app_token", "table_id", "record_id"],
                    ),
                    "data": _section(
                        "Record body",
                        {"fields": {"type": "object", "description": "Field values to change"}},
                        ["fields"],
                    ),
                },
                "required": ["path", "data"],
            },
        ),
    ]
