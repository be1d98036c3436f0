import logging
import os
from typing import Any, Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from ..domain import AutomationIntent, IntentResult
from ..interfaces import IAutomationTransport

logger = logging.getLogger("autotester.transport")


class PlaywrightTransport(IAutomationTransport):
    """Maps automation intents onto a Playwright page."""

    def __init__(self, headless: bool = True, screenshot_dir: Optional[str] = None,
                 viewport: Optional[Dict[str, int]] = None, default_timeout_ms: int = 30000):
        self.headless = headless
        self.screenshot_dir = screenshot_dir
        self.viewport = viewport or {"width": 1280, "height": 720}
        self.default_timeout_ms = default_timeout_ms
        self.pw = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.console_messages: List[Dict[str, str]] = []
        self.failed_requests: List[str] = []

    async def start(self):
        """Initializes the Playwright browser."""
        if self.pw:
            return
        self.pw = await async_playwright().start()
        self.browser = await self.pw.chromium.launch(headless=self.headless)
        self.context = await self.browser.new_context(viewport=self.viewport)
        self.page = await self.context.new_page()
        self.page.set_default_timeout(self.default_timeout_ms)
        self.attach(self.page)

    def attach(self, page: Page):
        """Use an existing page and start collecting console/network events."""
        self.page = page
        page.on("console", lambda msg: self.console_messages.append({"type": msg.type, "text": msg.text}))
        page.on("requestfailed", lambda request: self.failed_requests.append(request.url))

    async def close(self):
        """Clean up resources."""
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.pw:
            await self.pw.stop()
        self.pw = None
        self.browser = None
        self.context = None
        self.page = None

    async def dispatch(self, intent: AutomationIntent) -> IntentResult:
        if intent.operation == "close":
            await self.close()
            return IntentResult(success=True)
        if not self.page:
            return IntentResult(success=False, error="Transport not started")

        executor = getattr(self, f"_op_{intent.operation}", None)
        if not executor:
            logger.error(f"Unsupported intent: {intent.operation}")
            return IntentResult(success=False, error=f"Unsupported intent: {intent.operation}")

        logger.debug(f"Dispatching {intent.operation} {intent.parameters}")
        return await executor(self.page, **intent.parameters)

    def _locator(self, page: Page, ref: str):
        return page.locator(f'[data-testid="{ref}"], #{ref}').first

    async def _op_navigate(self, page: Page, url: str) -> IntentResult:
        await page.goto(url, wait_until="networkidle")
        return IntentResult(success=True, data=page.url)

    async def _op_navigate_back(self, page: Page) -> IntentResult:
        await page.go_back()
        return IntentResult(success=True, data=page.url)

    async def _op_click(self, page: Page, ref: str, element: str = "") -> IntentResult:
        await self._locator(page, ref).click()
        return IntentResult(success=True)

    async def _op_type(self, page: Page, ref: str, text: str, element: str = "",
                       slowly: bool = False) -> IntentResult:
        locator = self._locator(page, ref)
        if slowly:
            await locator.press_sequentially(text, delay=50)
        else:
            await locator.fill(text)
        return IntentResult(success=True)

    async def _op_select(self, page: Page, ref: str, values: List[str], element: str = "") -> IntentResult:
        selected = await self._locator(page, ref).select_option(values)
        return IntentResult(success=True, data=selected)

    async def _op_fill_form(self, page: Page, fields: List[Dict[str, Any]]) -> IntentResult:
        for field in fields:
            await self._locator(page, field["ref"]).fill(field["value"])
        return IntentResult(success=True)

    async def _op_hover(self, page: Page, ref: str, element: str = "") -> IntentResult:
        await self._locator(page, ref).hover()
        return IntentResult(success=True)

    async def _op_press_key(self, page: Page, key: str) -> IntentResult:
        await page.keyboard.press(key)
        return IntentResult(success=True)

    async def _op_wait(self, page: Page, time_ms: int) -> IntentResult:
        await page.wait_for_timeout(time_ms)
        return IntentResult(success=True)

    async def _op_wait_for(self, page: Page, text: str, time: float = 5) -> IntentResult:
        await page.get_by_text(text).first.wait_for(state="visible", timeout=time * 1000)
        return IntentResult(success=True)

    async def _op_snapshot(self, page: Page, ref: Optional[str] = None) -> IntentResult:
        if ref:
            count = await page.locator(f'[data-testid="{ref}"], #{ref}').count()
            if count == 0:
                return IntentResult(success=False, error=f"Element not found: {ref}")
        tree = await page.locator("body").aria_snapshot()
        return IntentResult(success=True, data=tree)

    async def _op_screenshot(self, page: Page, filename: str) -> IntentResult:
        path = os.path.join(self.screenshot_dir, filename) if self.screenshot_dir else filename
        await page.screenshot(path=path, full_page=True)
        return IntentResult(success=True, data=path)

    async def _op_evaluate(self, page: Page, function: str, expected: Optional[str] = None) -> IntentResult:
        value = await page.evaluate(function)
        if expected is not None and expected not in str(value):
            return IntentResult(success=False, data=value, error=f"Expected {expected!r}, got {value!r}")
        return IntentResult(success=True, data=value)

    async def _op_console_messages(self, page: Page, level: Optional[str] = None) -> IntentResult:
        messages = [m for m in self.console_messages if level is None or m["type"] == level]
        return IntentResult(success=True, data=messages)

    async def _op_network_requests(self, page: Page) -> IntentResult:
        return IntentResult(success=True, data=list(self.failed_requests))
