import numpy as np
import pytest

from multibody_ir import ConstantRep, FeatureReferenceRep, Frame, OperatorRep, Placement, Subsystem
from multibody_ir.conversion import conversion_op, convert_placement
from multibody_ir.types import DIRECTION, FRAME, ORIENTATION, REAL, STATION, VEC3


@pytest.mark.parametrize(
    'source, target, expected',
    [
        (Placement.station([1, 2, 3]), VEC3, [1, 2, 3]),
        (Placement.vec3([1, 2, 3]), STATION, [1, 2, 3]),
        (Placement.vec3([0, 3, 4]), DIRECTION, [0, 0.6, 0.8]),
        (Placement.direction([0, 1, 0]), VEC3, [0, 1, 0]),
        (Placement.frame(origin=[4, 5, 6]), STATION, [4, 5, 6]),
        (Placement.frame(), ORIENTATION, np.eye(3)),
    ],
)
def test_constants_are_folded(source, target, expected):
    converted = convert_placement(source, target)

    assert converted.placement_type is target
    assert isinstance(converted.rep, ConstantRep)
    np.testing.assert_allclose(converted.rep.value, expected)


def test_station_to_frame_uses_identity_orientation():
    converted = convert_placement(Placement.station([1, 2, 3]), FRAME)

    rotation, origin = converted.rep.value
    np.testing.assert_allclose(rotation, np.eye(3))
    np.testing.assert_allclose(origin, [1, 2, 3])


def test_zero_vector_has_no_direction():
    converted = convert_placement(Placement.vec3([0, 0, 0]), DIRECTION)

    assert converted.is_empty()
    assert converted.placement_type is None


@pytest.mark.parametrize(
    'source, target',
    [
        (Placement.real(1.0), STATION),
        (Placement.orientation(np.eye(3)), DIRECTION),
        (Placement.direction([1, 0, 0]), STATION),
        (Placement.empty(), VEC3),
    ],
)
def test_unsupported_conversions_return_empty(source, target):
    assert convert_placement(source, target).is_empty()


def test_same_type_conversion_returns_a_copy():
    source = Placement.station([1, 2, 3])

    converted = convert_placement(source, STATION)

    assert converted is not source
    assert converted.placement_type is STATION


def test_frame_reference_converts_through_origin_feature():
    model = Subsystem('model')
    frame = model.add_child(Frame('frame'))

    converted = convert_placement(Placement.of(frame), STATION)

    assert isinstance(converted.rep, FeatureReferenceRep)
    assert converted.rep.feature is frame.origin


def test_expressions_are_wrapped_in_conversion_operator():
    model = Subsystem('model')
    a = model.add_child(Frame('a'))
    b = model.add_child(Frame('b'))

    converted = convert_placement(Placement.of(a) * Placement.of(b), STATION)

    assert isinstance(converted.rep, OperatorRep)
    assert converted.rep.op == 'frame_origin'
    assert converted.describe() == 'frame_origin(mul(@model/a, @model/b))'


def test_conversion_op_lookup():
    assert conversion_op(FRAME, STATION) == 'frame_origin'
    assert conversion_op(REAL, STATION) is None
    assert conversion_op(None, STATION) is None
