from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.env import env_float
from storefront.models import CtaPhase, LoadState, Product, Variant
from storefront.quickview.focus import FocusGuard
from storefront.quickview.resolver import is_value_available, resolve
from storefront.services.product_loader import LoadResult, NotFound, ProductLoader, TransportError

logger = logging.getLogger("storefront.quickview")

PENDING_DELAY_S = env_float("QUICKVIEW_PENDING_DELAY_S", 1.0)
CONFIRM_DELAY_S = env_float("QUICKVIEW_CONFIRM_DELAY_S", 1.2)


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_open: bool = False
    target: Optional[str] = None
    load_state: LoadState = "idle"
    product: Optional[Product] = None
    selections: dict[str, str] = Field(default_factory=dict)
    cta_phase: CtaPhase = "idle"
    error: Optional[str] = None
    not_found: bool = False


class QuickViewSession:
    """Lifecycle controller for the quick-view overlay.

    All transitions happen on the running event loop. Loads are tracked by
    a generation counter and CTA timers by an epoch counter; a result or
    timer whose number is no longer current is dropped.
    """

    def __init__(
        self,
        loader: ProductLoader,
        *,
        guard: Optional[FocusGuard] = None,
        pending_delay_s: Optional[float] = None,
        confirm_delay_s: Optional[float] = None,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self._loader = loader
        self._guard = guard
        self._pending_delay_s = PENDING_DELAY_S if pending_delay_s is None else pending_delay_s
        self._confirm_delay_s = CONFIRM_DELAY_S if confirm_delay_s is None else confirm_delay_s
        self._close_listeners: list[Callable[[], None]] = [on_close] if on_close is not None else []

        self._is_open = False
        self._target: Optional[str] = None
        self._load_state: LoadState = "idle"
        self._product: Optional[Product] = None
        self._loaded_for: Optional[str] = None
        self._error: Optional[str] = None
        self._not_found = False
        self._selections: dict[str, str] = {}
        self._cta_phase: CtaPhase = "idle"

        self._generation = 0
        self._load_task: Optional[asyncio.Task[None]] = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._cta_epoch = 0
        self._cta_timer: Optional[asyncio.TimerHandle] = None
        self._disposed = False

    def add_close_listener(self, listener: Callable[[], None]) -> None:
        self._close_listeners.append(listener)

    # -- read side ---------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def target(self) -> Optional[str]:
        return self._target

    @property
    def load_state(self) -> LoadState:
        return self._load_state

    @property
    def product(self) -> Optional[Product]:
        return self._product

    @property
    def selections(self) -> dict[str, str]:
        return dict(self._selections)

    @property
    def cta_phase(self) -> CtaPhase:
        return self._cta_phase

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            is_open=self._is_open,
            target=self._target,
            load_state=self._load_state,
            product=self._product,
            selections=dict(self._selections),
            cta_phase=self._cta_phase,
            error=self._error,
            not_found=self._not_found,
        )

    def resolved_variant(self) -> Optional[Variant]:
        if self._product is None:
            return None
        return resolve(self._product.options, self._product.variants, self._selections)

    def is_value_available(self, option_name: str, value: str) -> bool:
        if self._product is None:
            return False
        return is_value_available(
            self._product.options,
            self._product.variants,
            self._selections,
            option_name,
            value,
        )

    # -- open / close ------------------------------------------------------

    def open(self, identifier: str) -> None:
        if self._disposed:
            logger.warning("quickview_open_after_dispose target=%s", identifier)
            return

        was_open = self._is_open
        retarget = identifier != self._target
        self._is_open = True

        if retarget:
            self._target = identifier
            self._reset_interaction()
            self._start_load()
        elif self._product is not None and self._loaded_for == identifier:
            logger.debug("quickview_reopen_cached target=%s", identifier)
        elif self._load_state != "loading":
            self._reset_interaction()
            self._start_load()

        if not was_open and self._guard is not None:
            self._guard.activate()

    def close(self) -> None:
        if not self._is_open:
            return
        self._is_open = False
        self._generation += 1
        if self._load_state == "loading":
            self._load_state = "idle"
        self._load_task = None
        self._cancel_cta()

        try:
            if self._guard is not None:
                self._guard.deactivate()
        finally:
            logger.debug("quickview_closed target=%s", self._target)
            for listener in list(self._close_listeners):
                listener()

    async def dispose(self) -> None:
        """Tear down as on unmount: close and drop outstanding loads."""
        try:
            self.close()
        finally:
            self._disposed = True
            tasks = list(self._tasks)
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

    def _reset_interaction(self) -> None:
        self._selections = {}
        self._cancel_cta()

    # -- loading -----------------------------------------------------------

    def _start_load(self) -> None:
        identifier = self._target
        if not self._is_open or not identifier:
            return

        self._generation += 1
        generation = self._generation
        self._load_state = "loading"
        self._product = None
        self._loaded_for = None
        self._error = None
        self._not_found = False

        task = asyncio.get_running_loop().create_task(self._run_load(identifier, generation))
        self._load_task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_load(self, identifier: str, generation: int) -> None:
        try:
            result: LoadResult = await self._loader.load(identifier)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("quickview_loader_raised target=%s err=%r", identifier, exc)
            result = TransportError(identifier=identifier, detail=str(exc))

        if generation != self._generation or not self._is_open or identifier != self._target:
            logger.debug("quickview_load_discarded target=%s generation=%s", identifier, generation)
            return

        self._apply_load(identifier, result)

    def _apply_load(self, identifier: str, result: LoadResult) -> None:
        self._load_task = None
        if isinstance(result, Product):
            self._product = result
            self._loaded_for = identifier
            self._load_state = "loaded"
            self._selections = {k: v for k, v in self._selections.items() if result.find_option(k)}
            if self._guard is not None:
                self._guard.refresh()
            logger.info("quickview_loaded target=%s variants=%s", identifier, len(result.variants))
            return

        self._product = None
        self._loaded_for = None
        self._load_state = "failed"
        self._not_found = isinstance(result, NotFound)
        self._error = result.message
        logger.info("quickview_load_failed target=%s kind=%s", identifier, result.kind)

    async def wait_for_load(self) -> None:
        task = self._load_task
        if task is not None:
            await asyncio.shield(task)

    # -- selections --------------------------------------------------------

    def pick(self, option_name: str, value: str) -> bool:
        product = self._product
        if not self._is_open or product is None or self._load_state != "loaded":
            return False
        option = product.find_option(option_name)
        if option is None or value not in option.values:
            logger.debug("quickview_pick_rejected option=%s value=%s reason=unknown", option_name, value)
            return False
        if self._cta_phase != "idle":
            return False
        if self._selections.get(option_name) == value:
            return True
        if not self.is_value_available(option_name, value):
            logger.debug("quickview_pick_rejected option=%s value=%s reason=unavailable", option_name, value)
            return False
        self._selections = {**self._selections, option_name: value}
        return True

    def unpick(self, option_name: str) -> bool:
        if self._cta_phase != "idle" or option_name not in self._selections:
            return False
        self._selections = {k: v for k, v in self._selections.items() if k != option_name}
        return True

    # -- add to bag --------------------------------------------------------

    def add_to_bag(self) -> bool:
        if not self._is_open or self._cta_phase != "idle":
            return False
        variant = self.resolved_variant()
        if variant is None or not variant.available_for_sale:
            return False

        self._cta_phase = "pending"
        epoch = self._cta_epoch
        self._cta_timer = asyncio.get_running_loop().call_later(
            self._pending_delay_s, self._confirm_added, epoch, self._target
        )
        logger.info("quickview_add_to_bag target=%s variant=%s", self._target, variant.id)
        return True

    def _confirm_added(self, epoch: int, target: Optional[str]) -> None:
        if epoch != self._cta_epoch or not self._is_open or target != self._target:
            return
        self._cta_phase = "confirmed"
        self._cta_timer = asyncio.get_running_loop().call_later(
            self._confirm_delay_s, self._dismiss_after_confirm, epoch
        )

    def _dismiss_after_confirm(self, epoch: int) -> None:
        if epoch != self._cta_epoch or self._cta_phase != "confirmed":
            return
        self._cta_timer = None
        self.close()

    def _cancel_cta(self) -> None:
        self._cta_epoch += 1
        if self._cta_timer is not None:
            self._cta_timer.cancel()
            self._cta_timer = None
        self._cta_phase = "idle"

    # -- keyboard ----------------------------------------------------------

    def handle_key(self, key: str, *, shift: bool = False) -> bool:
        if not self._is_open:
            return False
        if key == "Escape":
            self.close()
            return True
        if key == "Tab" and self._guard is not None:
            return self._guard.handle_tab(shift)
        return False
