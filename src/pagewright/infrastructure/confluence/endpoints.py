"""Request builders for the Confluence endpoints the client uses."""

from __future__ import annotations

from typing import BinaryIO, Iterable, List, Optional, TextIO, Union

from pagewright.domain.models.page import PageInfo
from pagewright.infrastructure.http_client import (
    JSON_RPC_API,
    ApiRequest,
    MultipartFile,
)

PAGE_EXPAND = "ancestors,version"

# Uploads are rejected by XSRF protection without this header
_NO_CHECK = {"X-Atlassian-Token": "no-check"}


def space_homepage(space: str) -> ApiRequest:
    return ApiRequest("GET", f"space/{space}", params={"expand": "homepage"})


def find_page(space: str, title: str, page_type: str) -> ApiRequest:
    params = {
        "spaceKey": space,
        "expand": PAGE_EXPAND,
        "type": page_type,
    }
    if title:
        params["title"] = title
    return ApiRequest("GET", "content/", params=params)


def page_by_id(page_id: str) -> ApiRequest:
    return ApiRequest("GET", f"content/{page_id}", params={"expand": PAGE_EXPAND})


def _storage_body(value: str) -> dict:
    return {"storage": {"representation": "storage", "value": value}}


def create_page(
    space: str,
    page_type: str,
    parent: Optional[PageInfo],
    title: str,
    body: str,
) -> ApiRequest:
    payload = {
        "type": page_type,
        "title": title,
        "space": {"key": space},
        "body": _storage_body(body),
        "metadata": {"properties": {"editor": {"value": "v2"}}},
    }
    if parent is not None:
        payload["ancestors"] = [{"id": parent.id}]
    return ApiRequest("POST", "content/", json=payload)


def emoji_code_point(emoji: str) -> str:
    """Hex code point of the first character, as page properties expect it"""
    return format(ord(emoji[0]), "x")


def update_page(
    page: PageInfo,
    content: str,
    *,
    minor_edit: bool = False,
    version_message: str = "",
    appearance: str = "full-width",
    emoji: str = "",
) -> ApiRequest:
    ancestors: List[dict] = []
    # Only the direct parent may be sent; blog posts have none
    if page.type != "blogpost" and page.parent is not None:
        ancestors = [{"id": page.parent.id}]

    # The draft appearance follows the user's editor default and is left alone
    properties = {"content-appearance-published": {"value": appearance}}
    if emoji:
        code_point = emoji_code_point(emoji)
        properties["emoji-title-draft"] = {"value": code_point}
        properties["emoji-title-published"] = {"value": code_point}

    payload = {
        "id": page.id,
        "type": page.type,
        "title": page.title,
        "version": {
            "number": page.version.number + 1,
            "minorEdit": minor_edit,
            "message": version_message,
        },
        "ancestors": ancestors,
        "body": _storage_body(content),
        "metadata": {"properties": properties},
    }
    return ApiRequest("PUT", f"content/{page.id}", json=payload)


def read_stream(stream: Union[bytes, str, BinaryIO, TextIO]) -> bytes:
    """Materialize an upload body once, so every attempt sends the same bytes

    Text (a ``str`` or a text-mode stream) is encoded as UTF-8.
    """
    content = stream if isinstance(stream, (bytes, bytearray, str)) else stream.read()
    if isinstance(content, str):
        return content.encode("utf-8")
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    raise TypeError(f"upload content must be bytes or str, not {type(content).__name__}")


def _attachment_upload(path: str, name: str, comment: str, content: bytes) -> ApiRequest:
    return ApiRequest(
        "POST",
        path,
        files=(MultipartFile("file", name, content),),
        form={"comment": comment},
        headers=_NO_CHECK,
    )


def create_attachment(page_id: str, name: str, comment: str, content: bytes) -> ApiRequest:
    return _attachment_upload(f"content/{page_id}/child/attachment", name, comment, content)


def update_attachment(
    page_id: str, attachment_id: str, name: str, comment: str, content: bytes
) -> ApiRequest:
    return _attachment_upload(
        f"content/{page_id}/child/attachment/{attachment_id}/data", name, comment, content
    )


def list_attachments(page_id: str) -> ApiRequest:
    return ApiRequest(
        "GET",
        f"content/{page_id}/child/attachment",
        params={"expand": "version,container", "limit": "1000"},
    )


def add_labels(page_id: str, labels: Iterable[str]) -> ApiRequest:
    payload = [{"prefix": "global", "name": label} for label in labels if label]
    return ApiRequest("POST", f"content/{page_id}/label", json=payload)


def delete_label(page_id: str, label: str) -> ApiRequest:
    return ApiRequest("DELETE", f"content/{page_id}/label", params={"name": label})


def page_labels(page_id: str, prefix: str) -> ApiRequest:
    return ApiRequest("GET", f"content/{page_id}/label", params={"prefix": prefix})


def user_fullname_cql(name: str) -> str:
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'user.fullname~"{escaped}"'


def search_users(name: str) -> ApiRequest:
    return ApiRequest("GET", "search/user", params={"cql": user_fullname_cql(name)})


def search_users_legacy(name: str) -> ApiRequest:
    """Older servers only expose user search through the generic search"""
    return ApiRequest("GET", "search", params={"cql": user_fullname_cql(name)})


def current_user() -> ApiRequest:
    return ApiRequest("GET", "user/current")


def restrict_updates_cloud(page_id: str, account_id: str) -> ApiRequest:
    payload = [
        {
            "operation": "update",
            "restrictions": {
                "user": [{"type": "known", "accountId": account_id}],
            },
        }
    ]
    return ApiRequest("POST", f"content/{page_id}/restriction", json=payload)


def restrict_updates_server(page_id: str, allowed_user: str) -> ApiRequest:
    return ApiRequest(
        "POST",
        "setContentPermissions",
        api=JSON_RPC_API,
        json=[page_id, "Edit", [{"userName": allowed_user}]],
    )
