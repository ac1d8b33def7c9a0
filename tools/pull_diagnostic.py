"""Run one pose-drag increment on a simple chain and report the result.

The drag goes through a DragSession, with the chain drawn under a view
transform (offset, rotation, zoom) so cursor mapping is exercised too.

Usage::

    python tools/pull_diagnostic.py --angles 90 60 30 --pull 1 0 --rate 1.0
    python tools/pull_diagnostic.py --angles 90 90 90 --target 2 --pull -2 0 -v
    python tools/pull_diagnostic.py --view-offset 200 100 --view-angle 30 --view-zoom 2
"""

import argparse
import logging
import math
import sys
sys.path.insert(0, "src")

from poseforge.core.events import EventBus, EventType
from poseforge.core.math_utils import (
    clamp, deg_to_rad, mat3_inverse, mat3_rotation, mat3_scale, mat3_translation,
    rad_to_deg, transform_point, vec2,
)
from poseforge.core.skeleton import build_chain
from poseforge.dynamics.dynamics_config import load_dynamics_config
from poseforge.pose.drag_session import DragSession

logger = logging.getLogger("pull_diagnostic")


def apply_rotations(top_bone, rotations, command):
    """Committer that writes straight into the skeleton; no undo stack."""
    top_bone.set_rotations(rotations)
    return (command or 0) + 1


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--angles", type=float, nargs="+", default=[90.0, 60.0, 30.0],
                        help="World angle of each segment, degrees")
    parser.add_argument("--length", type=float, default=10.0, help="Segment length")
    parser.add_argument("--target", type=int, default=-1,
                        help="Index of the pulled segment (negative counts from the tip)")
    parser.add_argument("--pull", type=float, nargs=2, default=[1.0, 0.0], metavar=("DX", "DY"),
                        help="Grip displacement in skeleton space")
    parser.add_argument("--rate", type=float, default=1.0,
                        help="Grip position along the segment (0 root, 1 tail)")
    parser.add_argument("--view-offset", type=float, nargs=2, default=[0.0, 0.0],
                        metavar=("X", "Y"))
    parser.add_argument("--view-angle", type=float, default=0.0, help="View rotation, degrees")
    parser.add_argument("--view-zoom", type=float, default=1.0)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(name)s: %(message)s")

    if args.view_zoom <= 0.0:
        parser.error("--view-zoom must be positive")

    config = load_dynamics_config()
    top = build_chain([deg_to_rad(a) for a in args.angles], args.length)
    bones = list(top.iter_preorder())
    segments = bones[1:]
    if not segments:
        parser.error("need at least one segment angle")
    target = segments[args.target]

    # Skeleton space -> screen
    view = (mat3_translation(*args.view_offset)
            @ mat3_rotation(deg_to_rad(args.view_angle))
            @ mat3_scale(args.view_zoom, args.view_zoom))

    bus = EventBus()
    bus.subscribe(EventType.PULL_FINISHED,
                  lambda bone, increments: logger.debug("%s released after %d increment(s)",
                                                        bone.name, increments))
    session = DragSession(apply_rotations, config=config,
                          inv_matrix=mat3_inverse(view), bus=bus)

    rate = clamp(args.rate, 0.0, 1.0)
    start, end = target.parent.world_pos, target.world_pos
    grip = start + rate * (end - start)
    before = [b.world_pos.copy() for b in bones]

    if not session.press(target, transform_point(view, grip)):
        parser.error(f"{target.name} cannot be grabbed")
    grip_rate = session.state.pull_pos_rate
    result = session.drag(transform_point(view, grip + vec2(*args.pull)))
    session.release()

    logger.info("Pulled %s by (%g, %g) at rate %.2f; %d substeps, conduction %.2f",
                target.name, args.pull[0], args.pull[1], grip_rate,
                config.substeps, config.conduction)
    for bone, pos0, diff in zip(bones, before, result.differences):
        moved = bone.world_pos - pos0
        logger.info("  %-6s delta %+8.4f deg  pos (%7.3f, %7.3f)  moved (%+.4f, %+.4f)",
                    bone.name, rad_to_deg(diff), bone.world_pos[0], bone.world_pos[1],
                    moved[0], moved[1])

    rigid_top = result.dynamics.rigid_top_bone
    drift = math.hypot(*(rigid_top.root_pos - result.dynamics.origin_pos))
    logger.info("Rigid top drift from anchor: %.2e", drift)


if __name__ == "__main__":
    main()
