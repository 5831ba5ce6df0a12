"""Interaction state machine for the mission planner.

Uses python-statemachine for the mode lifecycle:
- Clear state definitions (one draw state per feature type)
- Guarded transitions (conditions on event arguments and selection)
- Entry/before hooks for selection and draft bookkeeping
- A listener that refreshes the scene after every transition

Architecture Overview
---------------------
MissionController classifies raw pointer/keyboard input into intents
(see gesture.py) and sends events here. The machine owns only mode-related
state, kept on InteractionContext (the python-statemachine model):

    state            current state id (managed by python-statemachine)
    selection        ids of selected elements (0 or 1 populated)
    pending_menu     open context menu, if any
    camera_control   active camera drag and its source
    draft            in-progress geometry while drawing
    drawing_just_finished  suppresses the menu of a finishing double-click

States:
    VIEW: Nothing being edited (selection may hold a freshly drawn element)
    MODIFY: One element selected for vertex/property editing
    DRAW_<TYPE>: Placing vertices of a new element of that feature type

Transitions:
    VIEW/MODIFY -> DRAW_<T>: begin_draw(feature_type=T)
    DRAW_<T> -> VIEW: commit_draw(element_id) selects the new element
    MODIFY/DRAW_<T> -> VIEW: cancel (Escape, Enter, re-opening the add menu)
    VIEW/MODIFY -> MODIFY: select(element_id)
    MODIFY -> VIEW: deselect
    VIEW/MODIFY -> VIEW: delete_selection, only with a non-empty selection

Draw states always start with an empty selection, so draw mode with a
selection cannot occur.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from mission_planner.model.mission_element import FeatureType
from mission_planner.ui.draft import DraftGeometry

logger = logging.getLogger(__name__)


# Draw state id per feature type
DRAW_STATE_IDS: dict[FeatureType, str] = {
    FeatureType.NO_FLY_ZONE: "draw_no_fly_zone",
    FeatureType.GEOFENCE: "draw_geofence",
    FeatureType.SEARCH_ZONE: "draw_search_zone",
    FeatureType.AIR_ROUTE: "draw_air_route",
    FeatureType.GROUND_ROUTE: "draw_ground_route",
    FeatureType.SEARCH_POINT: "draw_search_point",
}
_FEATURE_BY_DRAW_STATE = {state_id: ft for ft, state_id in DRAW_STATE_IDS.items()}


class ModeKind(Enum):
    VIEW = "view"
    MODIFY = "modify"
    DRAW = "draw"


@dataclass(frozen=True)
class Mode:
    """Current interaction mode as a tagged value.

    STRICT: feature_type is set if and only if kind is DRAW.
    """

    kind: ModeKind
    feature_type: FeatureType | None = None

    def __post_init__(self) -> None:
        if (self.kind == ModeKind.DRAW) != (self.feature_type is not None):
            raise ValueError(f"Mode {self.kind.value} with feature_type={self.feature_type}")

    @property
    def is_draw(self) -> bool:
        return self.kind == ModeKind.DRAW

    @staticmethod
    def view() -> Mode:
        return Mode(kind=ModeKind.VIEW)

    @staticmethod
    def modify() -> Mode:
        return Mode(kind=ModeKind.MODIFY)

    @staticmethod
    def draw(feature_type: FeatureType) -> Mode:
        return Mode(kind=ModeKind.DRAW, feature_type=feature_type)

    def __str__(self) -> str:
        if self.feature_type is not None:
            return f"draw:{self.feature_type.value}"
        return self.kind.value


class CameraSource(Enum):
    """What started a camera-control drag."""

    MIDDLE_BUTTON = "middleButton"
    ALT_LEFT_BUTTON = "altLeftButton"
    HELD_RIGHT_BUTTON = "heldRightButton"


@dataclass
class CameraControl:
    """Camera-control drag state."""

    active: bool = False
    source: CameraSource | None = None
    last_pointer_pos: tuple[float, float] | None = None

    def start(self, source: CameraSource, pos: tuple[float, float]) -> None:
        self.active = True
        self.source = source
        self.last_pointer_pos = pos

    def stop(self) -> None:
        self.active = False
        self.source = None
        self.last_pointer_pos = None


@dataclass(frozen=True)
class AddElementMenu:
    """Context menu offering new feature types at a map coordinate."""

    lng: float
    lat: float
    x: float
    y: float


@dataclass(frozen=True)
class FeatureMenu:
    """Context menu for an existing element (select / delete)."""

    element_id: int
    x: float
    y: float


Menu = AddElementMenu | FeatureMenu


@dataclass
class InteractionContext:
    """Shared context/model for the interaction state machine.

    Note: The 'state' field is managed by python-statemachine when this
    object is passed as the model. It stores the current state id.
    """

    # State managed by python-statemachine (model pattern)
    state: str | None = None

    selection: tuple[int, ...] = ()
    pending_menu: Menu | None = None
    camera_control: CameraControl = field(default_factory=CameraControl)
    draft: DraftGeometry | None = None
    drawing_just_finished: bool = False

    def has_selection(self) -> bool:
        return len(self.selection) > 0

    def clear_selection(self) -> None:
        self.selection = ()

    def close_menu(self) -> bool:
        """Close the pending menu. Returns True if one was open."""
        was_open = self.pending_menu is not None
        self.pending_menu = None
        return was_open

    def __repr__(self) -> str:
        return (
            f"InteractionContext(state={self.state}, selection={list(self.selection)}, "
            f"menu={type(self.pending_menu).__name__ if self.pending_menu else None}, "
            f"camera={self.camera_control.active}, draft={len(self.draft) if self.draft else None})"
        )


class SceneRefreshListener:
    """Listener that logs every transition and asks the owner to refresh the scene.

    Usage:
        sm = InteractionStateMachine(context=context)
        sm.add_listener(SceneRefreshListener(on_refresh=controller.refresh_scene))
    """

    def __init__(self, on_refresh: Callable[[], None] | None = None) -> None:
        self._on_refresh = on_refresh

    def after_transition(self, event: str, source: State, target: State) -> None:
        logger.info(f"[STATE] {source.name} --({event})--> {target.name}")
        if self._on_refresh is not None:
            self._on_refresh()


class InteractionStateMachine(StateMachine):
    """State machine for the mission-element authoring workflow.

    See module docstring for complete transition documentation.
    """

    # ==========================================================================
    # State Definitions
    # ==========================================================================

    view = State("View", initial=True)
    modify = State("Modify")

    draw_no_fly_zone = State("DrawNoFlyZone", enter="start_draft")
    draw_geofence = State("DrawGeofence", enter="start_draft")
    draw_search_zone = State("DrawSearchZone", enter="start_draft")
    draw_air_route = State("DrawAirRoute", enter="start_draft")
    draw_ground_route = State("DrawGroundRoute", enter="start_draft")
    draw_search_point = State("DrawSearchPoint", enter="start_draft")

    # ==========================================================================
    # Transitions: entering draw mode
    # ==========================================================================

    begin_draw = (
        view.to(draw_no_fly_zone, cond="wants_no_fly_zone")
        | view.to(draw_geofence, cond="wants_geofence")
        | view.to(draw_search_zone, cond="wants_search_zone")
        | view.to(draw_air_route, cond="wants_air_route")
        | view.to(draw_ground_route, cond="wants_ground_route")
        | view.to(draw_search_point, cond="wants_search_point")
        | modify.to(draw_no_fly_zone, cond="wants_no_fly_zone")
        | modify.to(draw_geofence, cond="wants_geofence")
        | modify.to(draw_search_zone, cond="wants_search_zone")
        | modify.to(draw_air_route, cond="wants_air_route")
        | modify.to(draw_ground_route, cond="wants_ground_route")
        | modify.to(draw_search_point, cond="wants_search_point")
    )

    # ==========================================================================
    # Transitions: leaving draw mode
    # ==========================================================================

    commit_draw = (
        draw_no_fly_zone.to(view)
        | draw_geofence.to(view)
        | draw_search_zone.to(view)
        | draw_air_route.to(view)
        | draw_ground_route.to(view)
        | draw_search_point.to(view)
    )

    cancel = (
        modify.to(view)
        | draw_no_fly_zone.to(view)
        | draw_geofence.to(view)
        | draw_search_zone.to(view)
        | draw_air_route.to(view)
        | draw_ground_route.to(view)
        | draw_search_point.to(view)
    )

    # ==========================================================================
    # Transitions: selection
    # ==========================================================================

    select = view.to(modify) | modify.to.itself(internal=True)
    deselect = modify.to(view)
    delete_selection = view.to.itself(cond="has_selection", internal=True) | modify.to(view, cond="has_selection")

    # ==========================================================================
    # Guards (Conditions)
    # ==========================================================================

    def wants_no_fly_zone(self, feature_type: FeatureType | None = None) -> bool:
        return feature_type == FeatureType.NO_FLY_ZONE

    def wants_geofence(self, feature_type: FeatureType | None = None) -> bool:
        return feature_type == FeatureType.GEOFENCE

    def wants_search_zone(self, feature_type: FeatureType | None = None) -> bool:
        return feature_type == FeatureType.SEARCH_ZONE

    def wants_air_route(self, feature_type: FeatureType | None = None) -> bool:
        return feature_type == FeatureType.AIR_ROUTE

    def wants_ground_route(self, feature_type: FeatureType | None = None) -> bool:
        return feature_type == FeatureType.GROUND_ROUTE

    def wants_search_point(self, feature_type: FeatureType | None = None) -> bool:
        return feature_type == FeatureType.SEARCH_POINT

    def has_selection(self) -> bool:
        """Guard: something is selected."""
        return self.context.has_selection()

    # ==========================================================================
    # State Check Properties
    # ==========================================================================

    @property
    def is_view(self) -> bool:
        return self.view.is_active

    @property
    def is_modify(self) -> bool:
        return self.modify.is_active

    @property
    def is_drawing(self) -> bool:
        return self.current_state.id in _FEATURE_BY_DRAW_STATE

    @property
    def mode(self) -> Mode:
        """Current mode as a tagged value."""
        state_id = self.current_state.id
        if state_id in _FEATURE_BY_DRAW_STATE:
            return Mode.draw(_FEATURE_BY_DRAW_STATE[state_id])
        if state_id == self.modify.id:
            return Mode.modify()
        return Mode.view()

    @property
    def drawing_feature_type(self) -> FeatureType | None:
        return _FEATURE_BY_DRAW_STATE.get(self.current_state.id)

    # ==========================================================================
    # Entry Hooks
    # ==========================================================================

    def start_draft(self, feature_type: FeatureType | None = None) -> None:
        """Hook: entering a draw state starts an empty draft, selection cleared."""
        draw_type = feature_type or self.drawing_feature_type
        self.context.clear_selection()
        self.context.draft = DraftGeometry(feature_type=draw_type)
        self.context.drawing_just_finished = False

    def on_enter_view(self) -> None:
        """Hook: entering view discards any draft."""
        self.context.draft = None

    # ==========================================================================
    # Transition Actions (before_* hooks)
    # ==========================================================================

    def before_commit_draw(self, element_id: int) -> None:
        """Select the freshly appended element; its finishing click must not open a menu."""
        self.context.selection = (element_id,)
        self.context.drawing_just_finished = True

    def before_cancel(self) -> None:
        self.context.clear_selection()

    def before_select(self, element_id: int) -> None:
        self.context.selection = (element_id,)

    def before_deselect(self) -> None:
        self.context.clear_selection()

    def before_delete_selection(self) -> None:
        self.context.clear_selection()

    # ==========================================================================
    # Initialization
    # ==========================================================================

    def __init__(self, context: InteractionContext | None = None, start_value: str | None = None) -> None:
        """Initialize state machine with model pattern.

        Args:
            context: Shared context/model (creates new if None)
            start_value: Optional initial state id (for restoring state)
        """
        model = context or InteractionContext()
        super().__init__(model=model, start_value=start_value)

    # ==========================================================================
    # Utility Methods
    # ==========================================================================

    @property
    def context(self) -> InteractionContext:
        """Alias for model."""
        return self.model

    def get_state_name(self) -> str:
        return self.current_state.name

    def get_available_events(self) -> list[str]:
        return sorted({t.event for t in self.current_state.transitions})

    def __repr__(self) -> str:
        return f"InteractionStateMachine(state={self.get_state_name()}, model={self.context!r})"

    def try_transition(self, event: str, **kwargs: Any) -> bool:
        """Attempt a transition, returning success/failure.

        Args:
            event: Transition event name
            **kwargs: Arguments for transition

        Returns:
            True if transition succeeded, False otherwise.
        """
        try:
            self.send(event, **kwargs)
            return True
        except TransitionNotAllowed:
            logger.warning(f"Transition '{event}' not allowed from {self.get_state_name()}")
            return False

    @staticmethod
    def create(
        on_refresh: Callable[[], None] | None = None,
    ) -> tuple[InteractionStateMachine, InteractionContext]:
        """Factory method to create state machine with context and refresh listener.

        Returns:
            Tuple of (InteractionStateMachine, InteractionContext)
        """
        context = InteractionContext()
        sm = InteractionStateMachine(context=context)
        sm.add_listener(SceneRefreshListener(on_refresh=on_refresh))
        return sm, context
