import logging

import numpy as np
import pytest

from multibody_ir import (
    AlreadyPlacedError,
    Direction,
    DowncastError,
    FeatureReferenceRep,
    Frame,
    IncompatiblePlacementError,
    InvalidDependencyError,
    NoPlacementError,
    Orientation,
    Placement,
    PlacementOwnershipError,
    PlacementType,
    RealParameter,
    Station,
    Subsystem,
    Vec3Parameter,
)


def build_model():
    model = Subsystem('model')
    body = model.add_child(Subsystem('body'))
    frame = body.add_child(Frame('frame'))
    tip = body.add_child(Station('tip'))
    return model, body, frame, tip


@pytest.mark.parametrize(
    'kind, value',
    [
        (RealParameter, 2.5),
        (Vec3Parameter, [1, 2, 3]),
        (Vec3Parameter, Placement.direction([1, 0, 0])),
        (Station, [1, 2, 3]),
        (Station, Placement.frame(origin=[1, 0, 0])),
        (Direction, [0, 0, 2]),
        (Orientation, np.eye(3)),
        (Orientation, Placement.frame()),
        (Frame, Placement.frame(origin=[1, 0, 0])),
        (Frame, Placement.station([1, 2, 3])),
        (Frame, Placement.orientation_from_euler('x', 30, degrees=True)),
    ],
)
def test_place_round_trip(kind, value):
    feature = kind('f')

    feature.place(value)

    assert feature.has_placement()
    assert feature.get_placement().placement_type is kind.required_placement_type
    assert feature.get_placement().committed


@pytest.mark.parametrize(
    'kind, value',
    [
        (RealParameter, [1, 2, 3]),
        (RealParameter, 'abc'),
        (Direction, [0, 0, 0]),
        (Orientation, [[1, 0, 0], [0, 1, 0], [0, 0, -1]]),
        (Station, Placement.real(1.0)),
        (Frame, Placement.direction([1, 0, 0])),
        (Vec3Parameter, Placement.orientation(np.eye(3))),
        (Station, Placement.empty()),
    ],
)
def test_incompatible_placement_leaves_feature_unplaced(kind, value):
    feature = kind('f')

    with pytest.raises(IncompatiblePlacementError):
        feature.place(value)

    assert not feature.has_placement()
    assert feature.placement_slots == ()


def test_incompatible_placement_message_names_feature_and_type():
    model, body, frame, tip = build_model()
    real = model.add_child(RealParameter('mass'))

    with pytest.raises(IncompatiblePlacementError) as exc:
        real.place(frame)

    assert 'no compatible placement for RealParameter model/mass' in str(exc.value)
    assert exc.value.feature is real


def test_placed_value_is_a_private_copy():
    value = Placement.station([1, 2, 3])
    a = Station('a')
    b = Station('b')

    a.place(value)
    b.place(value)

    assert a.get_placement() is not value
    assert a.get_placement() is not b.get_placement()
    assert not value.committed


def test_place_twice_raises():
    tip = Station('tip')
    tip.place([0, 0, 0])

    with pytest.raises(AlreadyPlacedError):
        tip.place([1, 0, 0])


def test_unplaced_feature_has_no_placement():
    model, body, frame, tip = build_model()

    with pytest.raises(NoPlacementError) as exc:
        tip.get_placement()

    assert 'Feature has no placement' in str(exc.value)
    with pytest.raises(NoPlacementError):
        tip.replace([1, 2, 3])


def test_replace_swaps_value():
    tip = Station('tip')
    tip.place([0, 0, 0])
    slot = tip.get_placement_slot()

    tip.replace([1, 2, 3])

    assert tip.get_placement_slot() is slot
    np.testing.assert_allclose(tip.get_placement().rep.value, [1, 2, 3])


def test_failed_replace_keeps_original_placement():
    tip = Station('tip')
    tip.place([1, 2, 3])
    original = tip.get_placement()

    with pytest.raises(IncompatiblePlacementError):
        tip.replace(Placement.orientation(np.eye(3)))

    assert tip.get_placement() is original


def test_replace_moves_slot_when_owner_changes():
    model, body, frame, tip = build_model()
    tip.place([0, 0, 0])
    assert tip.get_placement_slot().owner is tip

    tip.replace(frame)

    assert tip.get_placement_slot().owner is body
    assert tip.placement_slots == ()
    assert body.placement_slots == (tip.get_placement_slot(),)


def test_remove_placement_is_idempotent():
    tip = Station('tip')

    tip.remove_placement()
    tip.place([0, 0, 0])
    tip.remove_placement()
    tip.remove_placement()

    assert not tip.has_placement()
    assert tip.placement_slots == ()


def test_clear_placement_slot_on_owner_teardown():
    model, body, frame, tip = build_model()
    tip.place(frame)
    slot = tip.get_placement_slot()

    body.destroy_placement_slot(slot)

    assert not tip.has_placement()
    assert slot.client is None


def test_depends_on_referenced_feature_only():
    model = Subsystem('model')
    a = model.add_child(Station('a'))
    b = model.add_child(Station('b'))
    c = model.add_child(Station('c'))
    b.place([0, 0, 1])

    a.place(Placement.of(b) + [1, 0, 0])

    assert a.depends_on(b)
    assert not a.depends_on(c)
    assert not b.depends_on(a)


def test_depends_on_is_transitive():
    model = Subsystem('model')
    a = model.add_child(Station('a'))
    b = model.add_child(Station('b'))
    c = model.add_child(Station('c'))
    b.place(c)
    a.place(b)

    assert a.depends_on(c)


def test_self_reference_is_rejected():
    s = Station('s')

    with pytest.raises(InvalidDependencyError):
        s.place(Placement.of(s))

    assert not s.has_placement()


def test_cycle_is_rejected_before_installation():
    model = Subsystem('model')
    a = model.add_child(Station('a'))
    b = model.add_child(Station('b'))
    c = model.add_child(Station('c'))
    a.place(b)
    b.place(c)

    with pytest.raises(InvalidDependencyError) as exc:
        c.place(a)

    assert not c.has_placement()
    assert [f.name for f in exc.value.cycle] == ['c', 'a', 'b', 'c']
    assert 'cycle model/c -> model/a -> model/b -> model/c' in str(exc.value)


def test_cycle_through_replace_keeps_old_value():
    model = Subsystem('model')
    a = model.add_child(Station('a'))
    b = model.add_child(Station('b'))
    a.place([0, 0, 0])
    b.place(a)
    original = a.get_placement()

    with pytest.raises(InvalidDependencyError):
        a.replace(b)

    assert a.get_placement() is original


def test_frame_used_as_station_references_origin():
    model, body, frame, tip = build_model()

    as_station = frame.as_placement(PlacementType.STATION)
    as_orientation = frame.as_placement(PlacementType.ORIENTATION)

    assert isinstance(as_station.rep, FeatureReferenceRep)
    assert as_station.rep.feature is frame.origin
    assert as_station.rep.feature is not frame
    assert as_orientation.rep.feature is frame.orientation


def test_frame_cannot_be_used_as_real():
    model, body, frame, tip = build_model()

    as_real = frame.as_placement(PlacementType.REAL)

    assert as_real.is_empty()
    assert as_real.placement_type is None


def test_adaptation_shell_is_not_attached_by_use_feature_as():
    frame = Frame('frame')
    shell = Placement(PlacementType.STATION)

    rep = frame.use_feature_as(shell)

    assert rep.handle is shell
    assert shell.is_empty()
    assert frame.use_feature_as(Placement(PlacementType.DIRECTION)) is None


def test_station_and_direction_adapt_to_vec3():
    s = Station('s')
    d = Direction('d')

    assert s.as_placement(PlacementType.VEC3).describe() == 'as_vec3(@s)'
    assert d.as_placement(PlacementType.VEC3).describe() == 'as_vec3(@d)'
    assert s.as_placement(PlacementType.DIRECTION).is_empty()


def test_station_placed_on_frame_uses_origin():
    model, body, frame, tip = build_model()

    tip.place(frame)

    assert tip.get_placement().rep.feature is frame.origin
    assert tip.depends_on(frame.origin)
    assert tip.get_placement_slot().owner is body


def test_can_place_on_feature_like():
    model, body, frame, tip = build_model()
    mass = model.add_child(RealParameter('mass'))
    axis = model.add_child(Direction('axis'))
    offset = model.add_child(Vec3Parameter('offset'))

    assert tip.can_place_on_feature_like(frame)
    assert axis.can_place_on_feature_like(offset)
    assert not mass.can_place_on_feature_like(frame)
    assert not frame.can_place_on_feature_like(mass)


def test_create_feature_reference_checks_shell_type():
    frame = Frame('frame')

    origin_ref = frame.create_feature_reference(Placement(PlacementType.STATION), 1)

    assert origin_ref.index == 1
    with pytest.raises(TypeError):
        frame.create_feature_reference(Placement(PlacementType.STATION))
    with pytest.raises(IndexError):
        frame.create_feature_reference(Placement(PlacementType.STATION), 5)


def test_placement_referencing_other_tree_is_rejected():
    model, body, frame, tip = build_model()
    stray = Station('stray')

    with pytest.raises(PlacementOwnershipError):
        tip.place(stray)

    assert not tip.has_placement()


def test_constant_placement_is_owned_by_feature():
    model, body, frame, tip = build_model()

    tip.place([1, 2, 3])

    assert tip.get_placement_slot().owner is tip
    assert tip.get_placement_slot().client is tip


def test_frame_places_its_parts():
    model, body, frame, tip = build_model()

    frame.place(Placement.frame(origin=[1, 2, 3]))

    assert frame.origin.get_placement().describe() == '@model/body/frame[1]'
    assert frame.orientation.get_placement().describe() == '@model/body/frame[0]'
    assert frame.orientation.z.get_placement().describe() == '@model/body/frame/orientation[2]'
    assert frame.origin.depends_on(frame)
    assert frame.origin.get_placement_slot().owner is frame


def test_removing_frame_placement_removes_parts_it_placed():
    model, body, frame, tip = build_model()
    frame.place(Placement.frame())

    frame.remove_placement()

    assert not frame.origin.has_placement()
    assert not frame.orientation.has_placement()
    assert not frame.orientation.x.has_placement()
    assert frame.placement_slots == ()


def test_user_placed_parts_survive_frame_removal():
    model, body, frame, tip = build_model()
    frame.origin.place([1, 0, 0])
    frame.place(Placement.frame())
    frame.orientation.replace(Placement.orientation(np.eye(3)))

    frame.remove_placement()

    assert frame.origin.has_placement()
    assert frame.orientation.has_placement()
    assert frame.orientation.x.has_placement()


def test_frame_placed_on_own_origin_leaves_origin_unplaced():
    model, body, frame, tip = build_model()

    frame.place(frame.origin)

    assert frame.get_placement().describe() == 'frame_from_station(@model/body/frame/origin)'
    assert frame.orientation.has_placement()
    assert not frame.origin.has_placement()


def test_checked_downcast():
    model, body, frame, tip = build_model()

    assert Frame.downcast(model.find('body/frame')) is frame
    assert Frame.is_instance_of(frame)
    assert not Station.is_instance_of(frame)
    with pytest.raises(DowncastError) as exc:
        Station.downcast(frame)
    assert isinstance(exc.value, TypeError)
    assert 'is not a Station' in str(exc.value)


def test_lifecycle_logging(caplog):
    model = Subsystem('model')
    tip = model.add_child(Station('tip'))

    with caplog.at_level(logging.DEBUG, logger='multibody_ir.feature'):
        tip.place([1, 2, 3])
        tip.remove_placement()

    assert 'Entering Feature.place' in caplog.text
    assert 'Placed Station model/tip at station(1, 2, 3) (owner model/tip)' in caplog.text
    assert 'Removed placement of model/tip' in caplog.text


def test_cycle_at_end_of_long_chain_is_rejected():
    model = Subsystem('model')
    stations = [model.add_child(Station(f's{i}')) for i in range(800)]
    for prev, station in zip(stations, stations[1:]):
        station.place(prev)

    with pytest.raises(InvalidDependencyError) as exc:
        stations[0].place(stations[-1])

    assert not stations[0].has_placement()
    assert len(exc.value.cycle) == 801
    assert exc.value.cycle[0] is stations[0]
    assert exc.value.cycle[1] is stations[-1]
    assert exc.value.cycle[-1] is stations[0]


def test_replace_on_frame_places_parts_left_unplaced():
    model, body, frame, tip = build_model()
    frame.place(frame.origin)
    assert not frame.origin.has_placement()

    frame.replace(Placement.frame(origin=[1, 2, 3]))

    assert frame.origin.get_placement().describe() == '@model/body/frame[1]'
    assert frame.orientation.has_placement()


def test_replace_on_frame_keeps_parts_it_placed():
    model, body, frame, tip = build_model()
    frame.place(Placement.frame())
    origin_slot = frame.origin.get_placement_slot()

    frame.replace(Placement.frame(origin=[4, 5, 6]))

    assert frame.origin.get_placement_slot() is origin_slot
    frame.remove_placement()
    assert not frame.origin.has_placement()
    assert not frame.orientation.z.has_placement()


def test_frame_without_origin_part_is_not_a_station():
    model, body, frame, tip = build_model()
    frame.remove_child('origin')

    assert frame.as_placement(PlacementType.STATION).is_empty()
    assert frame.use_feature_as(Placement(PlacementType.STATION)) is None

    frame.place(Placement.frame())
    tip.place(frame)

    assert tip.get_placement().describe() == 'frame_origin(@model/body/frame)'
    assert frame.orientation.has_placement()
