import pytest
from unittest.mock import AsyncMock, MagicMock

from autotester.domain import AutomationIntent
from autotester.execution.playwright_transport import PlaywrightTransport


def make_transport(tmp_path=None):
    transport = PlaywrightTransport(screenshot_dir=str(tmp_path) if tmp_path else None)
    page = MagicMock()
    page.url = "http://builder.test/merlin8"
    page.goto = AsyncMock()
    page.go_back = AsyncMock()
    page.screenshot = AsyncMock()
    page.evaluate = AsyncMock(return_value="Acme Bakery")
    page.keyboard.press = AsyncMock()
    locator = MagicMock()
    locator.click = AsyncMock()
    locator.fill = AsyncMock()
    locator.hover = AsyncMock()
    locator.count = AsyncMock(return_value=1)
    locator.aria_snapshot = AsyncMock(return_value="- main")
    page.locator.return_value = locator
    page.locator.return_value.first = locator
    transport.attach(page)
    return transport, page, locator


@pytest.mark.asyncio
async def test_navigate_uses_goto():
    transport, page, _ = make_transport()

    result = await transport.dispatch(AutomationIntent("navigate", {"url": "http://builder.test/merlin8"}))

    assert result.success is True
    assert result.data == "http://builder.test/merlin8"
    page.goto.assert_called_once_with("http://builder.test/merlin8", wait_until="networkidle")


@pytest.mark.asyncio
async def test_click_and_type_use_locator():
    transport, page, locator = make_transport()

    await transport.dispatch(AutomationIntent("click", {"ref": "next-step-btn", "element": "Next"}))
    await transport.dispatch(AutomationIntent("type", {"ref": "email", "element": "email", "text": "a@b.c"}))

    locator.click.assert_called_once()
    locator.fill.assert_called_once_with("a@b.c")
    page.locator.assert_any_call('[data-testid="next-step-btn"], #next-step-btn')


@pytest.mark.asyncio
async def test_press_key_and_hover():
    transport, page, locator = make_transport()

    await transport.dispatch(AutomationIntent("press_key", {"key": "PageDown"}))
    await transport.dispatch(AutomationIntent("hover", {"ref": "nav-menu", "element": "nav-menu"}))

    page.keyboard.press.assert_called_once_with("PageDown")
    locator.hover.assert_called_once()


@pytest.mark.asyncio
async def test_evaluate_checks_expected_value():
    transport, _, _ = make_transport()

    ok = await transport.dispatch(AutomationIntent("evaluate", {"function": "() => document.title",
                                                                "expected": "Acme"}))
    bad = await transport.dispatch(AutomationIntent("evaluate", {"function": "() => document.title",
                                                                 "expected": "Other"}))

    assert ok.success is True
    assert bad.success is False
    assert "Other" in bad.error


@pytest.mark.asyncio
async def test_snapshot_missing_element_fails():
    transport, _, locator = make_transport()
    locator.count = AsyncMock(return_value=0)

    result = await transport.dispatch(AutomationIntent("snapshot", {"ref": "hero-section"}))

    assert result.success is False
    assert "hero-section" in result.error


@pytest.mark.asyncio
async def test_screenshot_written_to_directory(tmp_path):
    transport, page, _ = make_transport(tmp_path)

    result = await transport.dispatch(AutomationIntent("screenshot", {"filename": "hero.png"}))

    assert result.data == str(tmp_path / "hero.png")
    page.screenshot.assert_called_once_with(path=str(tmp_path / "hero.png"), full_page=True)


@pytest.mark.asyncio
async def test_console_messages_filtered_by_level():
    transport, page, _ = make_transport()
    console_handler = next(c.args[1] for c in page.on.call_args_list if c.args[0] == "console")
    console_handler(MagicMock(type="error", text="boom"))
    console_handler(MagicMock(type="log", text="hello"))

    result = await transport.dispatch(AutomationIntent("console_messages", {"level": "error"}))

    assert result.data == [{"type": "error", "text": "boom"}]


@pytest.mark.asyncio
async def test_unknown_intent_fails():
    transport, _, _ = make_transport()

    result = await transport.dispatch(AutomationIntent("teleport", {}))

    assert result.success is False
    assert "Unsupported intent" in result.error


@pytest.mark.asyncio
async def test_not_started_and_close():
    transport = PlaywrightTransport()

    result = await transport.dispatch(AutomationIntent("click", {"ref": "x"}))
    assert result.success is False

    closed = await transport.dispatch(AutomationIntent("close", {}))
    assert closed.success is True
    assert transport.page is None
