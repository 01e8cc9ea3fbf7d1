from __future__ import annotations

import logging
from typing import Iterator, Optional, Protocol

logger = logging.getLogger("storefront.focus-guard")

_FOCUSABLE_TAGS = {"button", "input", "select", "textarea"}


class Element:
    """Minimal element tree for headless overlays."""

    def __init__(
        self,
        tag: str,
        *,
        element_id: Optional[str] = None,
        href: Optional[str] = None,
        tabindex: Optional[int] = None,
        disabled: bool = False,
    ) -> None:
        self.tag = tag.lower()
        self.element_id = element_id
        self.href = href
        self.tabindex = tabindex
        self.disabled = disabled
        self.parent: Optional[Element] = None
        self.children: list[Element] = []

    def __repr__(self) -> str:
        return f"<{self.tag} id={self.element_id!r}>"

    def append(self, child: Element) -> Element:
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove(self, child: Element) -> None:
        self.children.remove(child)
        child.parent = None

    def iter_descendants(self) -> Iterator[Element]:
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def contains(self, other: Optional[Element]) -> bool:
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    @property
    def is_focusable(self) -> bool:
        # a[href], button:not([disabled]), textarea, input, select, [tabindex]:not([tabindex="-1"])
        if self.tabindex is not None and self.tabindex < 0:
            return False
        if self.tag == "a" and self.href:
            return True
        if self.tag == "button":
            return not self.disabled
        if self.tag in _FOCUSABLE_TAGS:
            return True
        return self.tabindex is not None

    def focusable_descendants(self) -> list[Element]:
        return [el for el in self.iter_descendants() if el.is_focusable]


class Document(Protocol):
    @property
    def active_element(self) -> Optional[Element]: ...

    def focus(self, element: Element) -> None: ...

    def contains(self, element: Optional[Element]) -> bool: ...

    def set_scroll_locked(self, locked: bool) -> None: ...


class InMemoryDocument(Document):
    def __init__(self) -> None:
        self.body = Element("body")
        self._active: Optional[Element] = None
        self.scroll_locked = False

    @property
    def active_element(self) -> Optional[Element]:
        if self._active is not None and not self.contains(self._active):
            self._active = None
        return self._active or self.body

    def focus(self, element: Element) -> None:
        if self.contains(element):
            self._active = element

    def contains(self, element: Optional[Element]) -> bool:
        return self.body.contains(element)

    def set_scroll_locked(self, locked: bool) -> None:
        self.scroll_locked = locked


class FocusGuard:
    """Focus trap plus scroll lock for one overlay container.

    Acquire with `activate()` (or `with guard:`) when the overlay becomes
    visible and release with `deactivate()` on every exit path.
    """

    def __init__(self, document: Document, container: Element) -> None:
        self._document = document
        self._container = container
        self._active = False
        self._previous: Optional[Element] = None
        self._focusables: list[Element] = []

    @property
    def active(self) -> bool:
        return self._active

    @property
    def trap_installed(self) -> bool:
        return bool(self._focusables)

    def activate(self) -> None:
        if self._active:
            return
        self._active = True
        self._previous = self._document.active_element
        self._document.set_scroll_locked(True)
        self._document.focus(self._container)
        self.refresh()
        logger.debug("focus_guard_activated trap=%s", self.trap_installed)

    def refresh(self) -> None:
        if not self._active:
            return
        self._focusables = self._container.focusable_descendants()

    def handle_tab(self, shift: bool = False) -> bool:
        """Wrap focus at the edges; True when the default move was replaced."""
        if not self._active or not self._focusables:
            return False

        first, last = self._focusables[0], self._focusables[-1]
        current = self._document.active_element
        # the container itself counts as outside the focus ring
        if current not in self._focusables:
            self._document.focus(last if shift else first)
            return True
        if shift and current is first:
            self._document.focus(last)
            return True
        if not shift and current is last:
            self._document.focus(first)
            return True
        return False

    def deactivate(self) -> None:
        if not self._active:
            return
        self._active = False
        self._focusables = []
        previous, self._previous = self._previous, None
        try:
            self._document.set_scroll_locked(False)
        finally:
            if previous is not None and self._document.contains(previous):
                self._document.focus(previous)
        logger.debug("focus_guard_released")

    def __enter__(self) -> FocusGuard:
        self.activate()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.deactivate()
