"""Example: place a frame, hang a station off its origin and copy the model."""

import logging

from multibody_ir import Frame, Placement, Station, Subsystem, placement_order


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    model = Subsystem("model")
    body = model.add_child(Subsystem("body"))
    frame = body.add_child(Frame("frame"))
    tip = body.add_child(Station("tip"))

    quarter_turn = [[0, -1, 0], [1, 0, 0], [0, 0, 1]]
    frame.place(Placement.frame(quarter_turn, [1, 0, 0]))
    tip.place(Placement.of(frame.origin) + [0, 0, 0.5])

    print("tip:", tip.get_placement())
    print("owner:", tip.get_placement_slot().owner.full_name)
    print("order:", [feature.full_name for feature in placement_order(model)])

    copy = model.clone()
    print("copied tip:", copy.find("body/tip").get_placement())


if __name__ == "__main__":
    main()
