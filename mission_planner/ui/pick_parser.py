"""Pick parser - maps picked deck.gl objects to PickResult.

Every datum rendered by MapRenderer carries a "type" tag (PickConfig) and
the "owner_id" of its mission element; vertex handles also carry
"vertex_index". GeoJsonLayer picks arrive as GeoJSON Features with these
fields under "properties".

Malformed objects are logged and treated as no hit.
"""

import logging
from typing import Any

from mission_planner.model.primitives import PickResult, PrimitiveKind

logger = logging.getLogger(__name__)

_KINDS = {kind.value: kind for kind in PrimitiveKind}


class PickParser:
    """Parses picked objects from the render projection.

    Example:
        pick = PickParser.parse({"type": "wall", "owner_id": 3})
        pick.owner_id  # 3
    """

    @staticmethod
    def parse(obj: dict[str, Any] | None) -> PickResult | None:
        """Parse a picked object to PickResult, or None if nothing usable was picked."""
        if obj is None:
            return None

        obj_type = obj.get("type")
        if not obj_type:
            logger.warning(f"Picked object without type field: {obj}")
            return None

        # GeoJSON Feature: extract type from properties (editable features)
        if obj_type == "Feature":
            props = obj.get("properties") or {}
            obj_type = props.get("type")
            if not obj_type:
                logger.debug(f"GeoJSON Feature without properties.type: {obj}")
                return None
            obj = {**obj, **props}

        kind = _KINDS.get(obj_type)
        if kind is None:
            logger.warning(f"Unknown picked object type: {obj_type}")
            return None

        owner_id = obj.get("owner_id")
        if not isinstance(owner_id, int) or isinstance(owner_id, bool):
            logger.warning(f"Picked {obj_type} without integer owner_id: {obj}")
            return None

        if kind == PrimitiveKind.VERTEX:
            vertex_index = obj.get("vertex_index")
            if not isinstance(vertex_index, int):
                logger.warning(f"Vertex pick missing vertex_index: {obj}")
                return None
            return PickResult(kind=kind, owner_id=owner_id, vertex_index=vertex_index)

        logger.debug(f"Pick: {kind.value} of element {owner_id}")
        return PickResult(kind=kind, owner_id=owner_id)
