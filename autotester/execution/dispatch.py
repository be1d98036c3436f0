"""
Closed dispatch table for UI commands.

Each (category, action) pair maps to an async handler that turns the
command into one or more automation intents through the engine. Resolution
returns SupportedCommand or UnsupportedCommand; nothing outside the table
is ever executed.
"""
import json
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Tuple, Union

from ..domain import Command, CommandCategory
from ..errors import CommandRejectedError

Handler = Callable[["object", Command], Awaitable[None]]

NAV = CommandCategory.NAVIGATION.value
FORM = CommandCategory.FORM_FILL.value
VERIFY = CommandCategory.VERIFICATION.value
INTERACT = CommandCategory.INTERACTION.value
QUALITY = CommandCategory.QUALITY_CHECK.value


@dataclass
class SupportedCommand:
    handler: Handler


@dataclass
class UnsupportedCommand:
    reason: str


Resolution = Union[SupportedCommand, UnsupportedCommand]


def _require(command: Command, attr: str) -> str:
    value = getattr(command, attr)
    if value is None or value == "":
        raise CommandRejectedError(
            f"{command.category}/{command.action} requires a {attr}", command.id
        )
    return value


def _wait_ms(command: Command, default: int = 1000) -> int:
    try:
        return int(command.value) if command.value else default
    except ValueError:
        raise CommandRejectedError(f"Invalid wait duration: {command.value!r}", command.id)


# =============================================================================
# Navigation
# =============================================================================

async def navigate(engine, command: Command):
    url = engine.resolve_url(command.value or "/")
    await engine.send("navigate", url=url)
    await engine.pause(engine.config.wait_after_navigation_ms)


async def click_link(engine, command: Command):
    ref = _require(command, "target")
    await engine.send("click", ref=ref, element=command.value or "link")
    await engine.pause(engine.config.wait_after_click_ms)


async def go_back(engine, command: Command):
    await engine.send("navigate_back")
    await engine.pause(engine.config.wait_after_navigation_ms)


async def wait_for_url(engine, command: Command):
    pattern = _require(command, "value")
    await engine.send("wait_for", text=pattern, time=10)


async def refresh(engine, command: Command):
    await engine.send("press_key", key="F5")
    await engine.pause(engine.config.wait_after_navigation_ms)


async def wait(engine, command: Command):
    await engine.send("wait", time_ms=_wait_ms(command))


# =============================================================================
# Form fill
# =============================================================================

async def fill_text(engine, command: Command):
    ref = _require(command, "target")
    text = _require(command, "value")
    await engine.send("type", ref=ref, element=ref, text=text)
    await engine.pause(engine.config.wait_after_form_fill_ms)


async def select_option(engine, command: Command):
    ref = _require(command, "target")
    value = _require(command, "value")
    await engine.send("select", ref=ref, element=ref, values=[value])
    await engine.pause(engine.config.wait_after_form_fill_ms)


async def click_button(engine, command: Command):
    ref = _require(command, "target")
    await engine.send("click", ref=ref, element=command.value or "button")
    await engine.pause(engine.config.wait_after_click_ms)


async def check_checkbox(engine, command: Command):
    ref = _require(command, "target")
    await engine.send("click", ref=ref, element="checkbox")
    await engine.pause(engine.config.wait_after_click_ms)


async def submit_form(engine, command: Command):
    _require(command, "target")
    await engine.send("press_key", key="Enter")
    await engine.pause(engine.config.wait_after_click_ms)


async def fill_form(engine, command: Command):
    try:
        fields = json.loads(command.value or "{}")
    except json.JSONDecodeError as e:
        raise CommandRejectedError(f"fill_form value is not JSON: {e}", command.id)
    if not isinstance(fields, dict):
        raise CommandRejectedError("fill_form value must be a JSON object", command.id)
    form_fields = [
        {"name": name, "ref": name, "type": "textbox", "value": str(value)}
        for name, value in fields.items()
    ]
    await engine.send("fill_form", fields=form_fields)
    await engine.pause(engine.config.wait_after_form_fill_ms)


# =============================================================================
# Verification
# =============================================================================

async def verify_element(engine, command: Command):
    ref = _require(command, "target")
    await engine.send("snapshot", ref=ref)


async def verify_text(engine, command: Command):
    text = _require(command, "value")
    await engine.send("wait_for", text=text, time=5)


async def verify_url(engine, command: Command):
    expected = _require(command, "value")
    await engine.send("evaluate", function="() => window.location.href", expected=expected)


async def verify_title(engine, command: Command):
    expected = _require(command, "value")
    await engine.send("evaluate", function="() => document.title", expected=expected)


async def snapshot(engine, command: Command):
    await engine.send("snapshot")


# =============================================================================
# Interaction
# =============================================================================

async def hover(engine, command: Command):
    ref = _require(command, "target")
    await engine.send("hover", ref=ref, element=ref)
    await engine.pause(engine.config.wait_after_hover_ms)


async def scroll(engine, command: Command):
    key = "PageUp" if command.value == "up" else "PageDown"
    await engine.send("press_key", key=key)
    await engine.pause(engine.config.wait_after_scroll_ms)


async def press_key(engine, command: Command):
    key = _require(command, "value")
    await engine.send("press_key", key=key)
    await engine.pause(engine.config.wait_after_key_ms)


async def type_slowly(engine, command: Command):
    ref = _require(command, "target")
    text = _require(command, "value")
    await engine.send("type", ref=ref, element=ref, text=text, slowly=True)
    await engine.pause(len(text) * engine.config.slow_typing_per_char_ms)


# =============================================================================
# Quality checks
# =============================================================================

async def screenshot(engine, command: Command):
    name = command.value or f"screenshot_{command.id}"
    if not name.endswith(".png"):
        name = f"{name}.png"
    await engine.send("screenshot", filename=name)
    engine.record_screenshot(name)


async def accessibility_check(engine, command: Command):
    await engine.send("snapshot")


async def console_errors(engine, command: Command):
    await engine.send("console_messages", level="error")


async def network_errors(engine, command: Command):
    await engine.send("network_requests")


async def performance_check(engine, command: Command):
    await engine.send("evaluate", function="() => JSON.stringify(performance.timing)")


DISPATCH_TABLE: Dict[Tuple[str, str], Handler] = {
    (NAV, "navigate"): navigate,
    (NAV, "click_link"): click_link,
    (NAV, "go_back"): go_back,
    (NAV, "wait_for_url"): wait_for_url,
    (NAV, "refresh"): refresh,
    (NAV, "wait"): wait,
    (FORM, "fill_text"): fill_text,
    (FORM, "select_option"): select_option,
    (FORM, "click_button"): click_button,
    (FORM, "check_checkbox"): check_checkbox,
    (FORM, "submit_form"): submit_form,
    (FORM, "fill_form"): fill_form,
    (VERIFY, "verify_element"): verify_element,
    (VERIFY, "verify_text"): verify_text,
    (VERIFY, "verify_url"): verify_url,
    (VERIFY, "verify_title"): verify_title,
    (VERIFY, "snapshot"): snapshot,
    (INTERACT, "hover"): hover,
    (INTERACT, "scroll"): scroll,
    (INTERACT, "press_key"): press_key,
    (INTERACT, "wait"): wait,
    (INTERACT, "type_slowly"): type_slowly,
    (QUALITY, "screenshot"): screenshot,
    (QUALITY, "accessibility_check"): accessibility_check,
    (QUALITY, "console_errors"): console_errors,
    (QUALITY, "network_errors"): network_errors,
    (QUALITY, "performance_check"): performance_check,
}

KNOWN_CATEGORIES = {c.value for c in CommandCategory}


def resolve(category: str, action: str) -> Resolution:
    """Look up the handler for a (category, action) pair."""
    handler = DISPATCH_TABLE.get((category, action))
    if handler is not None:
        return SupportedCommand(handler)
    if category not in KNOWN_CATEGORIES:
        return UnsupportedCommand(f"Unknown command category: {category}")
    return UnsupportedCommand(f"Unknown {category} action: {action}")
