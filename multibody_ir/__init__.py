from .config import PlacementConfig, get_placement_config, set_placement_config
from .conversion import convert_placement
from .errors import (
    AlreadyPlacedError,
    DowncastError,
    IncompatiblePlacementError,
    InvalidDependencyError,
    NoPlacementError,
    PlacementError,
    PlacementOwnershipError,
    PlacementTypeError,
)
from .feature import Feature
from .features import Direction, Frame, Orientation, RealParameter, Station, Vec3Parameter
from .graph import (
    check_placement_graph,
    find_dependency_cycle,
    placement_dependencies,
    placement_order,
    unplaced_features,
)
from .placement import (
    ConstantRep,
    ElementRep,
    FeatureReferenceRep,
    OperatorRep,
    Placement,
    PlacementRep,
    cross,
    distance,
    dot,
    norm,
    normalize,
)
from .slot import PlacementSlot
from .subsystem import Subsystem
from .types import PlacementType, WHOLE

__all__ = [
    "PlacementConfig",
    "get_placement_config",
    "set_placement_config",
    "convert_placement",
    "AlreadyPlacedError",
    "DowncastError",
    "IncompatiblePlacementError",
    "InvalidDependencyError",
    "NoPlacementError",
    "PlacementError",
    "PlacementOwnershipError",
    "PlacementTypeError",
    "Feature",
    "RealParameter",
    "Vec3Parameter",
    "Station",
    "Direction",
    "Orientation",
    "Frame",
    "check_placement_graph",
    "find_dependency_cycle",
    "placement_dependencies",
    "placement_order",
    "unplaced_features",
    "Placement",
    "PlacementRep",
    "ConstantRep",
    "FeatureReferenceRep",
    "OperatorRep",
    "ElementRep",
    "dot",
    "cross",
    "norm",
    "normalize",
    "distance",
    "PlacementSlot",
    "Subsystem",
    "PlacementType",
    "WHOLE",
]
