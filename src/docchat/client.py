"""HTTP client and interactive terminal chat for a running DocChat server."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Literal

import httpx


DEFAULT_BASE_URL = "http://localhost:8000"
Surface = Literal["web", "document", "excel"]

_CHAT_PATHS = {"web": "/chat", "document": "/document/chat", "excel": "/excel/chat"}
_SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm"}


class DocChatClientError(RuntimeError):
    """Raised when the server rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class ChatTurn:
    role: Literal["user", "assistant"]
    text: str


class DocChatClient:
    """Thin wrapper over the initialize and chat endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 120.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "DocChatClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def initialize_web(
        self,
        url: str,
        *,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"web_url": url}
        if chunk_size is not None:
            payload["chunk_size"] = chunk_size
        if chunk_overlap is not None:
            payload["chunk_overlap"] = chunk_overlap
        return self._post("/initialize", json=payload)

    def initialize_document(self, path: str | Path, **chunking: int) -> dict[str, Any]:
        return self._upload("/document/initialize", Path(path), chunking)

    def initialize_excel(self, path: str | Path, **chunking: int) -> dict[str, Any]:
        return self._upload("/excel/initialize", Path(path), chunking)

    def ask(self, question: str, *, surface: Surface = "web") -> str:
        """Send ``question`` and return the answer text."""

        body = self._post(_CHAT_PATHS[surface], json={"question": question})
        return str(body.get("response", ""))

    def _upload(self, path: str, file_path: Path, chunking: dict[str, int]) -> dict[str, Any]:
        data = {key: str(value) for key, value in chunking.items() if value is not None}
        with file_path.open("rb") as handle:
            return self._post(path, files={"file": (file_path.name, handle)}, data=data or None)

    def _post(self, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._client.post(path, **kwargs)
        except httpx.HTTPError as error:
            raise DocChatClientError(f"Request to {path} failed: {error}") from error

        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise DocChatClientError(str(detail), status_code=response.status_code)

        result: dict[str, Any] = response.json()
        return result


@dataclass(slots=True)
class Conversation:
    """Client-side chat history; a turn pair is kept only for answered questions."""

    client: DocChatClient
    surface: Surface = "web"
    turns: List[ChatTurn] = field(default_factory=list)

    def ask(self, question: str) -> str:
        answer = self.client.ask(question, surface=self.surface)
        self.turns.append(ChatTurn(role="user", text=question))
        self.turns.append(ChatTurn(role="assistant", text=answer))
        return answer


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with a document through a DocChat server.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="Server address.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--url", help="Web page to initialize before chatting.")
    source.add_argument("--file", type=Path, help="PDF, DOCX or XLSX file to initialize.")
    parser.add_argument("--chunk-size", type=int, default=None)
    parser.add_argument("--chunk-overlap", type=int, default=None)
    return parser.parse_args(argv)


def _initialize(client: DocChatClient, args: argparse.Namespace) -> Surface:
    chunking = {"chunk_size": args.chunk_size, "chunk_overlap": args.chunk_overlap}
    if args.url:
        summary = client.initialize_web(args.url, **chunking)
        surface: Surface = "web"
    elif args.file:
        if args.file.suffix.lower() in _SPREADSHEET_SUFFIXES:
            summary = client.initialize_excel(args.file, **chunking)
            surface = "excel"
        else:
            summary = client.initialize_document(args.file, **chunking)
            surface = "document"
    else:
        return "web"
    print(f"Indexed {summary['source']} ({summary['chunk_count']} chunks)")
    return surface


def main(argv: list[str] | None = None, *, input_fn: Callable[[str], str] = input) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    with DocChatClient(args.base_url) as client:
        try:
            surface = _initialize(client, args)
        except DocChatClientError as error:
            print(f"Initialization failed: {error}", file=sys.stderr)
            return 1

        conversation = Conversation(client, surface=surface)
        while True:
            try:
                question = input_fn("you> ").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                return 0
            if not question:
                continue
            if question in {"/quit", "/exit"}:
                return 0
            try:
                print(f"bot> {conversation.ask(question)}")
            except DocChatClientError as error:
                print(f"error: {error}", file=sys.stderr)


__all__ = ["ChatTurn", "Conversation", "DocChatClient", "DocChatClientError", "main"]


if __name__ == "__main__":
    sys.exit(main())
