"""Extension host wiring and the ``searchngen`` console entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import webbrowser
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from openai.types.chat import ChatCompletionMessageParam

from .ai.client import ClientSettings, CompletionClient, validate_api_key
from .chat.bridge import DisplayBridge, SettingsOpener
from .chat.errors import InvalidCredential
from .chat.prompts import EXPLAIN_PROMPT
from .chat.protocol import AddError
from .chat.session import ChatSession, CompletionFn
from .editor.surface import CodeContext, EditorSurface, SelectionChange
from .events.dispatcher import EventDispatcher
from .events.sink import LogSink, PathUnavailable
from .services.settings import Settings, SettingsStore, redact_secret
from .services.web_search import build_search_query, build_search_url
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}

KeyPrompt = Callable[[Optional[str]], Awaitable[Optional[str]]]
KeyValidator = Callable[..., Awaitable[Any]]
QueryPrompt = Callable[[str], Awaitable[Optional[str]]]


class Extension:
    """Owns the telemetry pipeline and the chat session for one editor window."""

    def __init__(
        self,
        settings: Settings,
        *,
        editor: EditorSurface | None = None,
        settings_store: SettingsStore | None = None,
        completion: CompletionFn | None = None,
        open_settings: SettingsOpener | None = None,
    ) -> None:
        self._settings = settings
        self._editor = editor
        self._store = settings_store
        self._completion = completion
        self._client: CompletionClient | None = None
        self.bridge = DisplayBridge(editor=editor, open_settings=open_settings)
        self._wire(None)

    @property
    def settings(self) -> Settings:
        return self._settings

    def activate(self) -> None:
        """Open the interaction log; chat keeps working when that fails."""

        sink: LogSink | None
        try:
            sink = LogSink.for_directory(self._settings.output_path)
        except PathUnavailable as exc:
            _LOGGER.error("Interaction logging disabled: %s", exc)
            sink = None
        self._wire(sink)

    def _wire(self, sink: LogSink | None) -> None:
        self.events = EventDispatcher(sink)
        self.session = ChatSession(self._complete, editor=self._editor, events=self.events)
        self.bridge.bind(self.session)

    def on_selection_changed(self, change: SelectionChange) -> None:
        """Log the selection and mirror the primary range into the panel."""

        self.events.on_selection_changed(change)
        if change.selections:
            self.bridge.set_selection(change.selections[0])

    async def ensure_api_key(self, prompt: KeyPrompt, *, validator: KeyValidator = validate_api_key) -> str | None:
        """Prompt until a valid API key is entered, then persist it.

        ``prompt`` receives the previous validation error (``None`` on the first
        attempt) and returns the entered key, or ``None`` to give up.
        """

        if self._settings.api_key:
            return self._settings.api_key
        error: str | None = None
        while True:
            candidate = await prompt(error)
            if candidate is None:
                return None
            try:
                await validator(candidate, base_url=self._settings.base_url)
            except InvalidCredential as exc:
                error = str(exc)
                continue
            key = candidate.strip()
            self._settings = replace(self._settings, api_key=key)
            if self._store is not None:
                self._store.save(self._settings)
            _LOGGER.info("API key %s validated and stored", redact_secret(key))
            return key

    async def explain_selection(self, context: CodeContext | None = None) -> None:
        """Ask the assistant to explain ``context``, or the editor's current selection."""

        if context is None:
            await self.bridge.receive({"type": "askQuestion", "value": EXPLAIN_PROMPT})
        else:
            await self.session.submit_question(EXPLAIN_PROMPT, context)

    async def web_search(
        self,
        context: CodeContext | None,
        *,
        confirm: QueryPrompt,
        open_url: Callable[[str], Any],
    ) -> str | None:
        """Search the web for the selected code, letting the user edit the query first."""

        if context is None and self._editor is not None:
            context = self._editor.code_context()
        query = build_search_query(context.code if context else None, context.language_id if context else None)
        if query is None:
            _LOGGER.info("No text selected for web search")
            return None
        self.events.record_web_search("onShowSearchQueryBox", query)
        chosen = await confirm(query)
        if not chosen:
            return None
        try:
            url = build_search_url(self._settings.query_prefix, chosen)
        except ValueError as exc:
            _LOGGER.error("Cannot build %s search URL: %s", self._settings.search_engine, exc)
            self.bridge.post(AddError(str(exc)))
            return None
        self.events.record_web_search("onWebSearch", url)
        _LOGGER.debug("Opening %s search: %s", self._settings.search_engine, url)
        open_url(url)
        return url

    async def _complete(self, messages: Sequence[ChatCompletionMessageParam]) -> str:
        if self._completion is not None:
            return await self._completion(messages)
        return await self._resolve_client().complete(messages)

    def _resolve_client(self) -> CompletionClient:
        client_settings = _client_settings(self._settings)
        if self._client is None or self._client.settings != client_settings:
            self._client = CompletionClient(client_settings)
        return self._client


def _client_settings(settings: Settings) -> ClientSettings:
    return ClientSettings(
        base_url=settings.base_url,
        api_key=settings.api_key,
        model=settings.model,
        temperature=settings.temperature,
        organization=settings.organization,
        request_timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        retry_min_seconds=settings.retry_min_seconds,
        retry_max_seconds=settings.retry_max_seconds,
        debug_logging=settings.debug_logging,
    )


class ConsoleSurface:
    """Renders outbound panel messages as plain text."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    def __call__(self, payload: Mapping[str, Any]) -> None:
        kind = payload.get("type")
        if kind == "showInProgress":
            if payload.get("inProgress"):
                self._write("… thinking")
        elif kind == "addQuestion":
            value = payload.get("value") or {}
            self._write(f"? {value.get('question', '')}")
            if value.get("codeBlock"):
                self._write(value["codeBlock"])
        elif kind == "addResponse":
            self._write(str(payload.get("value", "")))
        elif kind == "addError":
            self._write(f"! {payload.get('value', '')}")

    def _write(self, text: str) -> None:
        self._stream.write(text + "\n")
        self._stream.flush()


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure diagnostic logging for the console host."""

    targets = logging_utils.setup_logging(debug, force=force)
    _LOGGER.debug("Diagnostics in %s, dropped events in %s", targets.diagnostic, targets.dropped_events)


def load_settings(
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    try:
        return store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", store.path, exc)
        return Settings()


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the ``searchngen`` console script."""

    args = _parse_cli_args(argv)
    debug = args.debug or _env_flag("SEARCHNGEN_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("SEARCHNGEN_SETTINGS_PATH")
    store = SettingsStore(_expand_path(settings_path))
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(store, overrides=cli_overrides or None)
    if args.dump_settings:
        _dump_settings(settings, store, overrides=cli_overrides)
        return

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    extension = Extension(settings, settings_store=store)
    extension.activate()
    try:
        asyncio.run(run_console(extension))
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")


async def run_console(
    extension: Extension,
    *,
    read_line: Callable[[str], Awaitable[str | None]] | None = None,
    stream: TextIO | None = None,
) -> None:
    """Drive the chat panel protocol from a terminal."""

    reader = read_line or _read_stdin_line
    surface = ConsoleSurface(stream)
    extension.bridge.attach(surface)

    async def ask_key(error: str | None) -> str | None:
        if error:
            surface({"type": "addError", "value": error})
        entered = await reader("OpenAI API key: ")
        return entered.strip() if entered and entered.strip() else None

    if await extension.ensure_api_key(ask_key) is None:
        surface({"type": "addError", "value": "No API key configured; set one with --set api_key=..."})
        return

    pending: set[asyncio.Task[None]] = set()
    try:
        while True:
            line = await reader("> ")
            if line is None or line.strip() == "/quit":
                break
            command = line.strip()
            if command == "/reset":
                await extension.bridge.receive({"type": "clearConversation"})
            elif command == "/stop":
                await extension.bridge.receive({"type": "stopGenerating"})
            elif command.startswith("/search "):
                await extension.web_search(
                    CodeContext(code=command[len("/search "):], language_id=""),
                    confirm=_confirm_query(reader),
                    open_url=webbrowser.open,
                )
            else:
                if command == "/explain" or command.startswith("/explain "):
                    code = command[len("/explain"):].strip()
                    request = extension.explain_selection(CodeContext(code=code, language_id="") if code else None)
                else:
                    request = extension.bridge.receive({"type": "askQuestion", "value": line})
                task = asyncio.create_task(request)
                pending.add(task)
                task.add_done_callback(pending.discard)
        if pending:
            await asyncio.gather(*pending)
    finally:
        extension.bridge.detach()


def _confirm_query(reader: Callable[[str], Awaitable[str | None]]) -> QueryPrompt:
    async def confirm(query: str) -> str | None:
        edited = await reader(f"Search query [{query}]: ")
        if edited is None:
            return None
        return edited.strip() or query

    return confirm


async def _read_stdin_line(prompt: str) -> str | None:
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="searchngen",
        description="Chat with the coding assistant from a terminal while logging interaction events.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.searchngen/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging on the console.")
    return parser.parse_args(argv)


def _expand_path(value: str | None) -> Path | None:
    return Path(value).expanduser() if value else None


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is type(None) or normalized.lower() in {"none", "null"}:
        return None
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


__all__ = ["ConsoleSurface", "Extension", "configure_logging", "load_settings", "main", "run_console"]
