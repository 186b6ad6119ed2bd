# SPDX-License-Identifier: Apache-2.0
"""Resolve an entry's target URL and run exactly one launch strategy."""

from __future__ import annotations

import logging
import re
import urllib.parse
import webbrowser
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Protocol, Sequence

from debug_scaffold import record_breadcrumb, runtime_state, sanitize_log_extra, sanitize_url
from shelf_models import Entry, LinkVariant, ShelfContext, make_custom_entry
from shelf_storage import HANDOFF_KEY, KeyValueStore, SessionStore, add_custom_entry

logger = logging.getLogger(__name__)

Strategy = Literal["local", "local2", "blank", "now", "custom", "dy", "default"]
Action = Literal["store", "navigate", "blank", "go", "now", "dy", "create_custom"]

INVALID_SELECTION_MESSAGE = "Invalid selection. Please try again."

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


class InvalidSelection(ValueError):
    """The user picked a link variant that does not exist."""


class Prompter(Protocol):
    def advise(self, message: str) -> None: ...

    def choose_link(self, options: Sequence[str]) -> Optional[str]:
        """Return the raw answer, or ``None`` when the prompt was dismissed."""

    def ask_custom_entry(self) -> Optional[tuple[str, str]]: ...


class Navigator(Protocol):
    def navigate(self, url: str) -> None: ...

    def blank(self, url: str) -> None: ...

    def go(self, url: str) -> None: ...

    def now(self, url: str) -> None: ...

    def dy(self, url: str) -> None: ...


@dataclass(frozen=True)
class LaunchStep:
    action: Action
    arg: Optional[str] = None


@dataclass(frozen=True)
class LaunchPlan:
    """Strategy chosen for an entry and the helper calls it makes, in order."""

    strategy: Strategy
    target: Optional[str]
    steps: tuple[LaunchStep, ...]


def selection_prompt(links: Sequence[LinkVariant]) -> list[str]:
    return [f"{i + 1}: {link.name}" for i, link in enumerate(links)]


def parse_selection(raw: str, count: int) -> int:
    """Turn a 1-based answer into a 0-based index.

    Only the leading integer counts, so ``"2."`` and ``"2abc"`` both pick
    the second variant.
    """
    match = _LEADING_INT_RE.match(raw)
    if match is None:
        raise InvalidSelection(f"not a number: {raw!r}")
    choice = int(match.group(1), 10)
    if choice < 1 or choice > count:
        raise InvalidSelection(f"out of range: {choice}")
    return choice - 1


def resolve_target(entry: Entry, prompter: Prompter) -> Optional[str]:
    """Return the URL to open; ``None`` when the user dismissed the prompt.

    Raises :class:`InvalidSelection` for an answer that names no variant.
    """
    if len(entry.links) > 1:
        raw = prompter.choose_link(selection_prompt(entry.links))
        if raw is None:
            return None
        return entry.links[parse_selection(raw, len(entry.links))].url
    if entry.link:
        return entry.link
    if entry.links:
        return entry.links[0].url
    return None


def select_strategy(entry: Entry, ctx: ShelfContext) -> Strategy:
    if entry.local:
        return "local"
    if entry.local2:
        return "local2"
    if entry.blank:
        return "blank"
    if entry.now:
        return "now"
    if entry.custom and ctx.custom_entries:
        return "custom"
    if entry.dy:
        return "dy"
    return "default"


def build_launch_plan(entry: Entry, target: Optional[str], ctx: ShelfContext) -> LaunchPlan:
    """Return the launch plan for *entry*; pure, performs no navigation."""
    strategy = select_strategy(entry, ctx)
    top = ctx.top_level
    steps: list[LaunchStep]
    if strategy == "custom":
        steps = [LaunchStep("create_custom")]
    elif strategy == "local":
        steps = [
            LaunchStep("store", target),
            LaunchStep("navigate", target if top else ctx.handoff_url),
        ]
    elif strategy == "local2":
        steps = [LaunchStep("store", target), LaunchStep("navigate", target)]
    elif strategy == "blank":
        steps = [LaunchStep("blank", target)]
    elif strategy == "now":
        steps = [LaunchStep("now", target)]
        if top:
            steps.append(LaunchStep("navigate", target))
    elif strategy == "dy":
        steps = [LaunchStep("dy", target)]
    else:
        steps = [LaunchStep("go", target)]
        if top:
            steps.append(LaunchStep("blank", target))
    return LaunchPlan(strategy, target, tuple(steps))


def normalize_link(raw: str) -> str:
    """Ensure the URL has a scheme; if missing, prepend https://."""
    s = (raw or "").strip()
    if not s:
        return ""
    parsed = urllib.parse.urlparse(s)
    return s if parsed.scheme else f"https://{s}"


class BrowserNavigator:
    """Navigator backed by :mod:`webbrowser`.

    ``go``/``now``/``dy`` open the target through an optional route template
    such as ``"http://localhost:8080/a/{url}"``; without one they open it as is.
    """

    def __init__(
        self,
        go_route: Optional[str] = None,
        now_route: Optional[str] = None,
        dy_route: Optional[str] = None,
    ) -> None:
        self.routes = {"go": go_route, "now": now_route, "dy": dy_route}

    def _routed(self, helper: str, url: str) -> str:
        template = self.routes.get(helper)
        if not template:
            return url
        return template.format(url=urllib.parse.quote(url, safe=""))

    def navigate(self, url: str) -> None:
        webbrowser.open(url, new=0)

    def blank(self, url: str) -> None:
        webbrowser.open_new_tab(url)

    def go(self, url: str) -> None:
        webbrowser.open(self._routed("go", url), new=2)

    def now(self, url: str) -> None:
        webbrowser.open(self._routed("now", url), new=2)

    def dy(self, url: str) -> None:
        webbrowser.open(self._routed("dy", url), new=2)


class LaunchDispatcher:
    def __init__(
        self,
        navigator: Navigator,
        prompter: Prompter,
        store: KeyValueStore,
        session: SessionStore,
        on_custom_added: Optional[Callable[[Entry, ShelfContext], None]] = None,
    ) -> None:
        self.navigator = navigator
        self.prompter = prompter
        self.store = store
        self.session = session
        self.on_custom_added = on_custom_added

    def launch(self, entry: Entry, ctx: ShelfContext) -> Optional[LaunchPlan]:
        """Open *entry*; returns the executed plan, or ``None`` if aborted."""
        if entry.say:
            self.prompter.advise(entry.say)

        try:
            target = resolve_target(entry, self.prompter)
        except InvalidSelection as exc:
            record_breadcrumb("launch_aborted", name=entry.name, reason="invalid_selection")
            logger.info(
                "launch_invalid_selection",
                extra=sanitize_log_extra({"name": entry.name, "error": str(exc)}),
            )
            self.prompter.advise(INVALID_SELECTION_MESSAGE)
            return None

        plan = build_launch_plan(entry, target, ctx)
        if target is None and plan.strategy != "custom":
            record_breadcrumb("launch_aborted", name=entry.name, reason="no_target")
            return None

        url = sanitize_url(target) if target else None
        record_breadcrumb(
            "launch_plan",
            name=entry.name,
            strategy=plan.strategy,
            url=url,
            steps=[s.action for s in plan.steps],
        )
        runtime_state["last_launch"] = {"name": entry.name, "strategy": plan.strategy, "url": url}
        logger.info(
            "launch_attempt",
            extra=sanitize_log_extra(
                {
                    "event": "launch_attempt",
                    "name": entry.name,
                    "strategy": plan.strategy,
                    "url": url,
                    "namespace": ctx.namespace.tag,
                    "top_level": ctx.top_level,
                }
            ),
        )
        self.execute(plan, ctx)
        return plan

    def execute(self, plan: LaunchPlan, ctx: ShelfContext) -> None:
        for step in plan.steps:
            if step.action == "create_custom":
                self.create_custom_entry(ctx)
            elif step.action == "store":
                self.session.set(HANDOFF_KEY, step.arg or "")
            else:
                try:
                    getattr(self.navigator, step.action)(step.arg)
                except webbrowser.Error as exc:
                    url = sanitize_url(step.arg or "")
                    record_breadcrumb("launch_result", ok=False, action=step.action, url=url)
                    logger.error(
                        "launch_result",
                        extra=sanitize_log_extra(
                            {"event": "launch_result", "ok": False, "url": url, "error": str(exc)}
                        ),
                    )
                    self.prompter.advise(f"Could not open {url}.")
                    return
        record_breadcrumb("launch_result", ok=True, strategy=plan.strategy)

    def create_custom_entry(self, ctx: ShelfContext) -> Optional[Entry]:
        answer = self.prompter.ask_custom_entry()
        if answer is None:
            return None
        title, link = (answer[0] or "").strip(), normalize_link(answer[1])
        if not title or not link:
            return None
        entry = make_custom_entry(title, link)
        key = add_custom_entry(self.store, ctx.namespace, entry)
        record_breadcrumb(
            "custom_entry_added",
            key=key,
            namespace=ctx.namespace.tag,
            url=sanitize_url(link),
        )
        if self.on_custom_added is not None:
            self.on_custom_added(entry, ctx)
        return entry
