"""
navigator.py — Depth-tracked walk of the picker menu.

  COLLECTION ──open class──▶ CLASS ──open picture──▶ PICTURE ──Next──▶ PRESET_VIEW
       ▲                       │  ▲                    │  ▲                 │
       └──── back #1 ──────────┘  └──── back #2 ───────┘  └──── Cancel ─────┘

The picker has no ids or URLs; the only way around is click forward, click
back. Every stacked screen keeps an identical "Back" button, so the right one
is picked from the depth this controller tracks, never from what the page
looks like. Each move waits for the target screen's readiness signal; a
missing signal aborts the whole run with the path reached so far.

Lists are re-read after every move: element handles and positions from
before a navigation are never reused.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from enum import IntEnum
from pathlib import Path
from typing import Callable, List, NamedTuple, Optional, Sequence

from rich.console import Console

from . import selectors as sel
from .acquirer import ImageAcquirer
from .compositor import LayerBuffer, artifact_path, composite_layers
from .config import Settings
from .errors import ElementMissing, NavigationError
from .filters import FilterApplier, extract_filter
from .naming import (
    CLASS_NAME_LEN,
    COLLECTION_NAME_LEN,
    PICTURE_NAME_LEN,
    ensure_folder,
    fallback_name,
    sanitize,
)

console = Console()
logger = logging.getLogger(__name__)


class Depth(IntEnum):
    ROOT = 0
    COLLECTION = 1
    CLASS = 2
    PICTURE = 3
    PRESET_VIEW = 4


@dataclass(frozen=True)
class NavigationPath:
    collection: Optional[str] = None
    picture_class: Optional[str] = None
    picture: Optional[str] = None

    def as_tuple(self):
        return (self.collection, self.picture_class, self.picture)

    def __str__(self) -> str:
        return "/".join(p for p in self.as_tuple() if p)


@dataclass(frozen=True)
class MenuNode:
    depth: int           # 0 collection · 1 class · 2 picture · 3 preset
    display_name: str
    ordinal: int         # 0-based, valid only until the next navigation


@dataclass(frozen=True)
class PresetSelection:
    ordinal: int         # 1-based, names the output file
    name: str


@dataclass
class TraversalSummary:
    collections: int = 0
    classes: int = 0
    pictures: int = 0
    presets: int = 0
    artifacts: List[Path] = field(default_factory=list)


class _BackAction(NamedTuple):
    locator: tuple
    ordinal: int
    target: Depth
    settle_attr: str


# Keyed on the depth being left.
_BACK_ACTIONS = {
    Depth.PRESET_VIEW: _BackAction(sel.CANCEL_BUTTON, 0, Depth.PICTURE, "cancel_settle"),
    Depth.PICTURE:     _BackAction(sel.BACK_BUTTONS, sel.BACK_TO_CLASS, Depth.CLASS, "settle_delay"),
    Depth.CLASS:       _BackAction(sel.BACK_BUTTONS, sel.BACK_TO_COLLECTIONS, Depth.COLLECTION, "settle_delay"),
}

# What has to be on screen before a depth counts as reached.
_READY = {
    Depth.COLLECTION:  sel.COLLECTION_SECTIONS,
    Depth.CLASS:       sel.PICTURE_ITEMS,
    Depth.PICTURE:     sel.PRESETS_HEADING,
    Depth.PRESET_VIEW: sel.PREVIEW_CONTAINER,
}

Compositor = Callable[[Sequence[LayerBuffer], Path], Path]


class NavigationController:
    """
    Owns the single browser cursor for the whole run.

    Starts at COLLECTION (picker already open) and must end there.
    """

    def __init__(
        self,
        dom,
        settings: Optional[Settings] = None,
        acquirer: Optional[ImageAcquirer] = None,
        composite: Compositor = composite_layers,
        depth: Depth = Depth.COLLECTION,
    ) -> None:
        self.dom = dom
        self.settings = settings or Settings()
        self.acquirer = acquirer or ImageAcquirer(
            FilterApplier(dom),
            max_resolution=self.settings.max_resolution,
            timeout=self.settings.download_timeout,
        )
        self.composite = composite
        self.depth = depth
        self.path = NavigationPath()
        self.selection: Optional[PresetSelection] = None
        self.summary = TraversalSummary()

    # ── Public ────────────────────────────────────────────────────────────────

    def run(self) -> TraversalSummary:
        self._expect(Depth.COLLECTION, "start traversal")
        self.summary = TraversalSummary()

        total = len(self._find(sel.COLLECTION_SECTIONS))
        for index in range(total):
            self._process_collection(index, total)

        self._expect(Depth.COLLECTION, "finish traversal")
        console.print(f"🎊 Downloaded all {total} collections!")
        return self.summary

    # ── Levels ────────────────────────────────────────────────────────────────

    def _process_collection(self, index: int, total: int) -> None:
        section = self._nth(sel.COLLECTION_SECTIONS, index)
        node = self._node(0, section, sel.COLLECTION_TITLE, 0, index, "collection", COLLECTION_NAME_LEN)
        self.path = NavigationPath(collection=node.display_name)
        console.print(f'📘 Processing collection {index + 1} of {total}: "{node.display_name}"')

        class_total = len(self._find(sel.CLASS_ITEMS, scope=section))
        for class_index in range(class_total):
            self._process_class(index, class_index, class_total)

        self.summary.collections += 1
        console.print(f'🎊 Downloaded all {class_total} picture classes in "{node.display_name}"!')

    def _process_class(self, collection_index: int, index: int, total: int) -> None:
        section = self._nth(sel.COLLECTION_SECTIONS, collection_index)
        item = self._nth(sel.CLASS_ITEMS, index, scope=section)
        node = self._node(1, item, sel.CLASS_TITLE, 0, index, "class", CLASS_NAME_LEN)
        self.path = replace(self.path, picture_class=node.display_name, picture=None)
        console.print(f'🏷️  Processing picture class {index + 1} of {total}: "{node.display_name}"')

        self._enter(Depth.CLASS, sel.CLASS_BUTTON, scope=item)

        picture_total = len(self._find(sel.PICTURE_ITEMS))
        for picture_index in range(picture_total):
            self._process_picture(picture_index, picture_total)

        self.summary.classes += 1
        console.print(f'🎊 Downloaded all {picture_total} pictures in "{node.display_name}"!')
        self._leave_to(Depth.COLLECTION)
        self.path = replace(self.path, picture_class=None)

    def _process_picture(self, index: int, total: int) -> None:
        item = self._nth(sel.PICTURE_ITEMS, index)
        self._enter(Depth.PICTURE, sel.PICTURE_BUTTON, scope=item)

        node = self._node(2, None, sel.PICTURE_TITLE, sel.PICTURE_TITLE_INDEX, index, "picture", PICTURE_NAME_LEN)
        self.path = replace(self.path, picture=node.display_name)
        console.print(f'🖼️  Processing picture {index + 1} of {total}: "{node.display_name}"')

        preset_total = len(self._preset_radios())
        folder = ensure_folder(
            self.settings.output_dir, self.path.collection, self.path.picture_class, self.path.picture
        )
        for preset_index in range(preset_total):
            self._process_preset(preset_index, preset_total, folder)

        self.summary.pictures += 1
        console.print(f"📁 All images saved to: {folder}")
        self._leave_to(Depth.CLASS)
        self.path = replace(self.path, picture=None)

    def _process_preset(self, index: int, total: int, folder: Path) -> None:
        ordinal = index + 1
        self._select_preset(index)
        console.print(
            f'🎨 Processing preset {ordinal} of {total} for {self.path.picture}: "{self.selection.name}"'
        )

        self._enter(
            Depth.PRESET_VIEW, sel.NEXT_BUTTON,
            timeout=self.settings.preview_timeout,
            settle=self.settings.preview_settle,
        )

        buffers = self._acquire_layers(folder)
        artifact = self.composite(buffers, artifact_path(folder, ordinal))
        self.summary.artifacts.append(artifact)
        self.summary.presets += 1
        console.print(f"🎉 Downloaded preset {ordinal}!")

        self._leave_to(Depth.PICTURE)
        self.selection = None

    # ── Leaf work ─────────────────────────────────────────────────────────────

    def _preset_radios(self) -> list:
        self._expect(Depth.PICTURE, "list presets")
        with self._step("locate presets"):
            heading = self.dom.wait_for(sel.PRESETS_HEADING, timeout=self.settings.step_timeout)
            containers = self.dom.find_all(sel.PRESETS_CONTAINER, scope=heading)
            if not containers:
                raise ElementMissing(sel.PRESETS_CONTAINER)
            return self.dom.find_all(sel.PRESET_RADIOS, scope=containers[0])

    def _select_preset(self, index: int) -> None:
        radios = self._preset_radios()
        if index >= len(radios):
            raise NavigationError(
                f"preset {index + 1} missing ({len(radios)} rendered)", path=self.path, depth=self.depth
            )
        radio = radios[index]
        with self._step(f"select preset {index + 1}"):
            label = self.dom.attribute(radio, "aria-label") or ""
            name = sanitize(label, PICTURE_NAME_LEN, f"preset_{index + 1}")
            self.dom.click(radio, force=True)
            self.dom.click(self.dom.parent(radio))
        # Radio semantics: the new selection replaces whatever was active.
        self.selection = PresetSelection(ordinal=index + 1, name=name)

    def _acquire_layers(self, folder: Path) -> List[LayerBuffer]:
        with self._step("read preview layers"):
            container = self.dom.wait_for(sel.PREVIEW_CONTAINER, timeout=self.settings.preview_timeout)
            images = self.dom.find_all(sel.LAYER_IMAGES, scope=container)
            layers = [
                (self.dom.attribute(img, "src"), extract_filter(self.dom.attribute(img, "style")))
                for img in images
            ]

        buffers: List[LayerBuffer] = []
        for src, filter_expr in layers:
            if not src:
                continue
            buffers.append(self.acquirer.acquire(src, filter_expr, workdir=folder))
        logger.debug(f"{len(buffers)} layer(s) acquired for {self.path}")
        return buffers

    # ── Transitions ───────────────────────────────────────────────────────────

    def _enter(
        self,
        target: Depth,
        control: tuple,
        scope=None,
        timeout: Optional[float] = None,
        settle: Optional[float] = None,
    ) -> None:
        if target != self.depth + 1:
            raise NavigationError(
                f"cannot enter {target.name} from {self.depth.name}", path=self.path, depth=self.depth
            )
        timeout = timeout or self.settings.step_timeout
        with self._step(f"enter {target.name}"):
            button = self.dom.wait_for(control, scope=scope, timeout=self.settings.step_timeout)
            self.dom.click(button)
            self.dom.wait_for(_READY[target], timeout=timeout)
        self.dom.settle(self.settings.settle_delay if settle is None else settle)
        self.depth = target
        logger.debug(f"→ {target.name} {self.path}")

    def _leave_to(self, target: Depth) -> None:
        action = _BACK_ACTIONS.get(self.depth)
        if action is None or action.target != target:
            raise NavigationError(
                f"no back action from {self.depth.name} to {target.name}", path=self.path, depth=self.depth
            )
        with self._step(f"back to {target.name}"):
            if action.locator == sel.CANCEL_BUTTON:
                control = self.dom.wait_for(action.locator, timeout=self.settings.step_timeout)
            else:
                controls = self.dom.find_all(action.locator)
                if len(controls) <= action.ordinal:
                    raise ElementMissing(
                        action.locator,
                        f"back control #{action.ordinal} missing ({len(controls)} rendered)",
                    )
                control = controls[action.ordinal]
            self.dom.click(control, force=True)
            # Landing check: the target screen must show up, or the cursor is lost.
            self.dom.wait_for(_READY[target], timeout=self.settings.step_timeout)
        self.dom.settle(getattr(self.settings, action.settle_attr))
        self.depth = target
        logger.debug(f"← {target.name} {self.path}")

    # ── Helpers ───────────────────────────────────────────────────────────────

    @contextmanager
    def _step(self, action: str):
        try:
            yield
        except ElementMissing as e:
            raise NavigationError(f"{action}: {e}", path=self.path, depth=self.depth) from e

    def _expect(self, depth: Depth, action: str) -> None:
        if self.depth != depth:
            raise NavigationError(
                f"{action}: expected {depth.name}, cursor is at {self.depth.name}",
                path=self.path, depth=self.depth,
            )

    def _find(self, locator: tuple, scope=None) -> list:
        with self._step(f"enumerate {locator[1]}"):
            return self.dom.find_all(locator, scope=scope)

    def _nth(self, locator: tuple, index: int, scope=None):
        items = self._find(locator, scope=scope)
        if index >= len(items):
            raise NavigationError(
                f"item {index + 1} of {locator[1]} missing ({len(items)} rendered)",
                path=self.path, depth=self.depth,
            )
        return items[index]

    def _node(self, depth: int, scope, title: tuple, title_index: int,
              ordinal: int, kind: str, max_len: int) -> MenuNode:
        titles = self._find(title, scope=scope)
        text = ""
        if title_index < len(titles):
            with self._step(f"read {kind} name"):
                text = self.dom.text(titles[title_index])
        name = sanitize(text, max_len, fallback_name(kind, ordinal + 1))
        return MenuNode(depth=depth, display_name=name, ordinal=ordinal)
