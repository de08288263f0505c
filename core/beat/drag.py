"""Edge drag controller for the crop range and its context window.

The controller is an explicit state machine driven by plain method calls,
so it can be tested without synthesising pointer events:

    IDLE ──begin_edge_drag()──→ DRAGGING(edge) ──end_drag()/cancel_drag()──→ IDLE
                                    │  ↑
                                    └──┘ on_pointer_move()

Context-window geometry (source seconds)::

    PRECEDE        [start, start + ctx]          free edge: right
    CONTINUATION   [end - ctx, end]              free edge: left
    INPAINT        [start - ctx, end + ctx]      no free edge

While a session is active the context-window edge that is not being moved
stays fixed in timeline time (source time minus the start trim). Dragging
the crop start in PRECEDE mode therefore trades crop length for context
length: ``start + ctx`` is constant. Dragging the crop end in CONTINUATION
mode keeps ``end - ctx`` constant. The context length never drops below
``DragConfig.min_context_length``; when a move would push it lower the
dragged edge stops instead.

Pointer movement is applied incrementally: each move adds
``dx / pixels_per_second × factor`` to the running offset, where factor is
1.0 or ``precision_factor`` while the precision modifier is held. Toggling
the modifier mid-drag therefore never makes the handle jump.

Usage::

    controller = DragController(
        orchestrator=store,
        timeline=timeline,
        snapper=SnapResolver(state),
        pixels_per_second=lambda: waveform.pixels_per_second,
    )
    controller.begin_edge_drag(DragEdge.CROP_START, event.x)
    controller.on_pointer_move(event.x)
    controller.end_drag()
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from core.beat.config import DEFAULT_DRAG_CONFIG, DragConfig
from core.beat.errors import DragContextError
from core.beat.ports import CropOrchestrator, PointerCapture, TimelineModel
from core.beat.types import (
    CropRange,
    DragCommit,
    DragEdge,
    DragPreview,
    LoadedSample,
    Mode,
)

logger = logging.getLogger(__name__)

Snapper = Callable[[float], float]
CommitListener = Callable[[DragCommit], None]


class DragState(Enum):
    """Drag controller states."""

    IDLE = "idle"
    DRAGGING = "dragging"


class PinnedSide(Enum):
    """Which context-window edge is held during a session."""

    LEFT = "left"
    RIGHT = "right"


class PrecisionModifier:
    """Tracks whether the precision key is held.

    Key state is toggled on key-down/up. Window blur and focus must call
    ``reset()``; a key released while the window was unfocused never
    delivers its key-up, and the modifier would otherwise stick.
    """

    def __init__(self, key: str = "Shift", factor: float = 0.15) -> None:
        """Track ``key``; ``factor`` scales movement while it is held."""
        self.key = key
        self._factor = factor
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    @property
    def precision_factor(self) -> float:
        """Movement scale applied while the key is held."""
        return self._factor

    @property
    def factor(self) -> float:
        """Current movement scale: ``precision_factor`` if held, else 1.0."""
        return self._factor if self._held else 1.0

    def factor_for(self, held: bool | None = None) -> float:
        """Movement scale for an explicit held state; None uses the tracked one."""
        if held is None:
            return self.factor
        return self._factor if held else 1.0

    def key_down(self, key: str) -> None:
        if key == self.key:
            self._held = True

    def key_up(self, key: str) -> None:
        if key == self.key:
            self._held = False

    def reset(self) -> None:
        self._held = False


@dataclass
class DragSession:
    """State of one gesture, from pointer-down to pointer-up."""

    edge: DragEdge
    start_pointer_x: float
    initial_context_length: float
    initial_crop_range: CropRange
    initial_mode: Mode
    pinned_side: PinnedSide
    pinned_edge: float
    """Pinned context-window edge in timeline seconds."""
    anchor: float
    """Source-time position of the dragged handle at pointer-down."""
    sample_duration: float
    last_pointer_x: float
    preview: DragPreview
    offset: float = 0.0
    """Accumulated, precision-scaled displacement in seconds."""


def _clamp(value: float, lo: float, hi: float) -> float:
    """Clamp to [lo, hi]; ``lo`` wins when the bounds cross."""
    return max(lo, min(value, hi))


def context_window(crop: CropRange, context_length: float, mode: Mode) -> tuple[float, float]:
    """Return the context window ``(left, right)`` in source seconds."""
    if mode == Mode.PRECEDE:
        return crop.start, crop.start + context_length
    if mode == Mode.CONTINUATION:
        return crop.end - context_length, crop.end
    return crop.start - context_length, crop.end + context_length


def available_context(crop: CropRange, mode: Mode, sample_duration: float) -> float:
    """Longest context the source can supply next to ``crop`` in ``mode``."""
    if mode == Mode.PRECEDE:
        return sample_duration - crop.start
    if mode == Mode.CONTINUATION:
        return crop.end
    return min(crop.start, sample_duration - crop.end)


class DragController:
    """Stateful per-gesture controller for crop and context edge handles.

    Args:
        orchestrator: Owner of crop range, context length and mode.
        timeline: Timeline model (start trim, loaded sample).
        snapper: Maps a raw time to a snapped time (usually SnapResolver).
        pixels_per_second: Returns the current horizontal zoom. A
            non-positive value turns pointer moves into no-ops.
        capture: Optional exclusive pointer capture.
        config: Drag tuning parameters.
        modifier: Precision modifier tracker. One is created from ``config``
            when omitted.
    """

    def __init__(
        self,
        orchestrator: CropOrchestrator,
        timeline: TimelineModel,
        snapper: Snapper,
        pixels_per_second: Callable[[], float],
        *,
        capture: PointerCapture | None = None,
        config: DragConfig = DEFAULT_DRAG_CONFIG,
        modifier: PrecisionModifier | None = None,
    ) -> None:
        """Initialize in IDLE state."""
        self._orchestrator = orchestrator
        self._timeline = timeline
        self._snap = snapper
        self._pixels_per_second = pixels_per_second
        self._capture = capture
        self._config = config
        self.modifier = modifier or PrecisionModifier(
            key=config.precision_key, factor=config.precision_factor
        )
        self._state = DragState.IDLE
        self._session: DragSession | None = None
        self._listeners: list[CommitListener] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def is_dragging(self) -> bool:
        return self._state == DragState.DRAGGING

    @property
    def session(self) -> DragSession | None:
        return self._session

    def add_commit_listener(self, listener: CommitListener) -> Callable[[], None]:
        """Call ``listener`` after every commit (dependent re-layout).

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    # ------------------------------------------------------------------
    # Context reads
    # ------------------------------------------------------------------

    def _read_mode(self) -> Mode:
        mode = self._orchestrator.get_mode()
        if isinstance(mode, Mode):
            return mode
        if mode is None:
            raise DragContextError("Cannot start a drag before a mode is set")
        try:
            return Mode(mode)
        except ValueError as exc:
            raise DragContextError(f"Unknown mode {mode!r}") from exc

    def _read_crop(self) -> CropRange:
        raw = self._orchestrator.get_crop_range()
        if raw is None:
            raise DragContextError("Cannot start a drag before a crop range is set")
        try:
            crop = CropRange.of(raw)
        except (TypeError, ValueError) as exc:
            raise DragContextError(f"Malformed crop range {raw!r}") from exc
        if not crop.is_valid:
            raise DragContextError(f"Crop range start must be before end, got {crop.as_list()}")
        return crop

    def _read_context_length(self) -> float:
        ctx = self._orchestrator.get_context_length()
        if ctx is None or not math.isfinite(ctx) or ctx <= 0:
            raise DragContextError(f"Context length must be positive, got {ctx!r}")
        return float(ctx)

    def _read_sample_duration(self) -> float:
        sample = self._timeline.get_loaded_sample()
        if sample is None:
            return math.inf
        duration = LoadedSample.of(sample).duration
        return duration if duration > 0 else math.inf

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def begin_edge_drag(self, edge: DragEdge, pointer_x: float) -> bool:
        """Pointer-down on an edge handle.

        Snapshots the crop range, context length and mode, fixes the pinned
        context-window edge and acquires pointer capture.

        Args:
            edge: Handle being grabbed.
            pointer_x: Pointer x in pixels.

        Returns:
            True if a session started; False if one was already active (the
            new pointer-down is ignored, not queued).

        Raises:
            DragContextError: No mode or crop range is available, or a
                context handle was grabbed in INPAINT mode.
        """
        if self._state == DragState.DRAGGING:
            logger.debug("Ignoring pointer-down on %s: drag already active", edge.value)
            return False

        mode = self._read_mode()
        crop = self._read_crop()
        ctx = self._read_context_length()
        if edge == DragEdge.CONTEXT and mode == Mode.INPAINT:
            raise DragContextError("INPAINT context has no draggable edge")

        left, right = context_window(crop, ctx, mode)
        pinned_side = self._pinned_side(edge, mode)
        pinned_source = left if pinned_side == PinnedSide.LEFT else right
        trim = float(self._timeline.get_trim_start())
        duration = self._read_sample_duration()

        self._session = DragSession(
            edge=edge,
            start_pointer_x=float(pointer_x),
            initial_context_length=ctx,
            initial_crop_range=crop,
            initial_mode=mode,
            pinned_side=pinned_side,
            pinned_edge=pinned_source - trim,
            anchor=self._anchor(edge, mode, crop, ctx),
            sample_duration=duration,
            last_pointer_x=float(pointer_x),
            # A gesture with no effective move still commits a legal length.
            preview=DragPreview(
                crop_range=crop, context_length=self._fit_context(crop, ctx, mode, duration)
            ),
        )
        self._state = DragState.DRAGGING
        if self._capture is not None:
            self._capture.acquire()
        logger.debug(
            "Drag started: edge=%s mode=%s crop=%s ctx=%.3f pinned=%s@%.3f",
            edge.value,
            mode.value,
            crop.as_list(),
            ctx,
            pinned_side.value,
            pinned_source - trim,
        )
        return True

    def on_pointer_move(
        self,
        pointer_x: float,
        precision_modifier_held: bool | None = None,
    ) -> DragPreview | None:
        """Pointer-move while dragging.

        Args:
            pointer_x: Pointer x in pixels.
            precision_modifier_held: Whether the precision modifier is held.
                None uses the tracked ``modifier`` state.

        Returns:
            The updated preview, or None when idle or when the zoom is
            non-positive (nothing changes).
        """
        session = self._session
        if self._state != DragState.DRAGGING or session is None:
            return None

        pps = self._pixels_per_second()
        if not pps > 0:
            return None

        factor = self.modifier.factor_for(precision_modifier_held)
        session.offset += (float(pointer_x) - session.last_pointer_x) / pps * factor
        session.last_pointer_x = float(pointer_x)

        target = self._snap(session.anchor + session.offset)
        session.preview = self._resolve(session, target)
        return session.preview

    def end_drag(self) -> DragCommit | None:
        """Pointer-up: commit, notify listeners, release capture, go IDLE.

        Returns:
            The committed values, or None when no session was active.
        """
        session = self._session
        if self._state != DragState.DRAGGING or session is None:
            return None

        preview = session.preview
        commit = DragCommit(
            edge=session.edge,
            mode=session.initial_mode,
            crop_range=preview.crop_range,
            context_length=preview.context_length,
            changed=(
                preview.crop_range != session.initial_crop_range
                or preview.context_length != session.initial_context_length
            ),
        )
        try:
            self._orchestrator.set_crop_range(commit.crop_range.as_list())
            self._orchestrator.set_context_length(commit.context_length)
        finally:
            self._finish()

        for listener in list(self._listeners):
            listener(commit)
        logger.debug(
            "Drag committed: edge=%s crop=%s ctx=%.3f",
            commit.edge.value,
            commit.crop_range.as_list(),
            commit.context_length,
        )
        return commit

    def cancel_drag(self) -> bool:
        """Pointer-cancel: discard the preview without committing."""
        if self._state != DragState.DRAGGING:
            return False
        self._finish()
        logger.debug("Drag cancelled")
        return True

    def _finish(self) -> None:
        self._session = None
        self._state = DragState.IDLE
        if self._capture is not None:
            self._capture.release()

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @staticmethod
    def _pinned_side(edge: DragEdge, mode: Mode) -> PinnedSide:
        if mode == Mode.PRECEDE:
            return PinnedSide.RIGHT if edge == DragEdge.CROP_START else PinnedSide.LEFT
        if mode == Mode.CONTINUATION:
            return PinnedSide.LEFT if edge == DragEdge.CROP_END else PinnedSide.RIGHT
        return PinnedSide.RIGHT if edge == DragEdge.CROP_START else PinnedSide.LEFT

    @staticmethod
    def _anchor(edge: DragEdge, mode: Mode, crop: CropRange, ctx: float) -> float:
        if edge == DragEdge.CROP_START:
            return crop.start
        if edge == DragEdge.CROP_END:
            return crop.end
        # CONTEXT: the free edge of the window
        return crop.start + ctx if mode == Mode.PRECEDE else crop.end - ctx

    def _resolve(self, session: DragSession, target: float) -> DragPreview:
        """Apply the snapped target to the dragged edge and re-derive the pair."""
        min_ctx = self._config.min_context_length
        min_crop = self._config.min_crop_length
        duration = session.sample_duration
        crop = session.initial_crop_range
        ctx = session.initial_context_length
        pinned = session.pinned_edge + float(self._timeline.get_trim_start())
        mode, edge = session.initial_mode, session.edge

        start, end = crop.start, crop.end
        if mode == Mode.PRECEDE and edge == DragEdge.CROP_START:
            start = _clamp(target, 0.0, min(pinned - min_ctx, end - min_crop))
            ctx = pinned - start
        elif mode == Mode.PRECEDE and edge == DragEdge.CONTEXT:
            ctx = _clamp(target, pinned + min_ctx, duration) - pinned
        elif mode == Mode.CONTINUATION and edge == DragEdge.CROP_END:
            end = _clamp(target, max(pinned + min_ctx, start + min_crop), duration)
            ctx = end - pinned
        elif mode == Mode.CONTINUATION and edge == DragEdge.CONTEXT:
            ctx = pinned - _clamp(target, 0.0, pinned - min_ctx)
        elif mode == Mode.INPAINT and edge == DragEdge.CROP_START:
            start = _clamp(target, min(ctx, end - min_crop), end - min_crop)
        elif mode == Mode.INPAINT and edge == DragEdge.CROP_END:
            end = _clamp(target, start + min_crop, duration - ctx)
        elif edge == DragEdge.CROP_START:
            start = _clamp(target, 0.0, end - min_crop)
        else:
            end = _clamp(target, start + min_crop, duration)

        new_crop = CropRange(start, end)
        return DragPreview(
            crop_range=new_crop, context_length=self._fit_context(new_crop, ctx, mode, duration)
        )

    def _fit_context(self, crop: CropRange, ctx: float, mode: Mode, duration: float) -> float:
        """Bound ``ctx`` by the available audio, then raise it to the minimum."""
        ctx = min(ctx, available_context(crop, mode, duration))
        return max(self._config.min_context_length, ctx)
