# ------------------------------------------------------------------------ #
#      o-o      o                o                                         #
#     /         |                |                                         #
#    O     o  o O-o  o-o o-o     |  oo o--o o-o o-o                        #
#     \    |  | |  | |-' |   \   o | | |  |  /   /                         #
#      o-o o--O o-o  o-o o    o-o  o-o-o--O o-o o-o                        #
#             |                           |                                #
#          o--o                        o--o                                #
#                        o--o      o         o                             #
#                        |   |     |         |  o                          #
#                        O-Oo  o-o O-o  o-o -o-    o-o o-o                 #
#                        |  \  | | |  | | |  |  | |     \                  #
#                        o   o o-o o-o  o-o  o  |  o-o o-o                 #
#                                                                          #
#    Jemison High School - Huntsville Alabama                              #
# ------------------------------------------------------------------------ #

import logging
import sys
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple, Union

from wpimath.geometry import Pose2d, Pose3d, Translation2d
from wpimath.units import meters, seconds

import constants

logger = logging.getLogger(__name__)

StdDevs = Tuple[float, float, float]
TagPoseLookup = Callable[[int], Optional[Pose3d]]

# Reported when a pose should be ignored entirely by the pose estimator
MAX_STD_DEVS: StdDevs = (sys.float_info.max, sys.float_info.max, sys.float_info.max)


@dataclass
class TagObservation:
    """
    A fiducial (AprilTag) seen in a camera frame. Only the ID is needed, the
    field position of the tag comes from the field layout.
    """
    fiducial_id: int


@dataclass
class PoseEstimate:
    """
    A fused robot pose produced by the pose estimator for a single camera frame.

    Only the pose is used to compute standard deviations. The timestamp and the tags
    used by the solve are carried along for consumers of the estimate (the drivetrain
    pose estimator needs the timestamp).
    """
    pose: Union[Pose2d, Pose3d]
    timestamp: seconds = 0.0
    targets_used: Sequence[TagObservation] = field(default_factory=list)


def _planar(pose: Union[Pose2d, Pose3d]) -> Translation2d:
    if isinstance(pose, Pose3d):
        return pose.toPose2d().translation()

    return pose.translation()


class StdDevEstimator:
    """
    Dynamic standard deviations for vision pose measurements.

    The heuristic is based on the number of tags that contributed to the pose and how
    far away (on average) those tags are. Multiple tags start from a tighter baseline, a
    single far-away tag is not trusted at all, and everything else is scaled up with the
    square of the average distance.

    The result is in the form [x, y, theta], meters and radians, and is suitable to pass
    directly into the drivetrain's 'add_vision_measurement'.
    """
    def __init__(self,
                 single_tag_std_devs: StdDevs = constants.SINGLE_TAG_STD_DEVS,
                 multi_tag_std_devs: StdDevs = constants.MULTI_TAG_STD_DEVS,
                 max_single_tag_distance: meters = constants.MAX_SINGLE_TAG_DISTANCE,
                 distance_scale: float = constants.TAG_DISTANCE_SCALE):

        self._single_tag_std_devs: StdDevs = tuple(single_tag_std_devs)
        self._multi_tag_std_devs: StdDevs = tuple(multi_tag_std_devs)
        self._max_single_tag_distance: meters = max_single_tag_distance
        self._distance_scale: float = distance_scale

        self._lock = threading.Lock()
        self._last: StdDevs = self._single_tag_std_devs

    @property
    def single_tag_std_devs(self) -> StdDevs:
        return self._single_tag_std_devs

    @property
    def multi_tag_std_devs(self) -> StdDevs:
        return self._multi_tag_std_devs

    @property
    def last(self) -> StdDevs:
        return self.get_last()

    def get_last(self) -> StdDevs:
        """
        The standard deviations calculated on the most recent call to 'update'. Until
        the first update, this is the single-tag default.
        """
        with self._lock:
            return self._last

    def update(self, estimate: Optional[PoseEstimate],
               observations: Sequence[TagObservation],
               lookup: TagPoseLookup) -> StdDevs:
        """
        Calculate new standard deviations for an estimated pose.

        :param estimate:     The estimated pose, or None if the estimator did not produce one
        :param observations: All tags seen in this camera frame
        :param lookup:       Field pose of a tag given its ID, None if the tag is unknown
        :returns: The new standard deviations (also available from 'get_last')
        """
        std_devs = self._calculate(estimate, observations, lookup)

        with self._lock:
            self._last = std_devs

        return std_devs

    def _calculate(self, estimate: Optional[PoseEstimate],
                   observations: Sequence[TagObservation],
                   lookup: TagPoseLookup) -> StdDevs:
        if estimate is None:
            return self._single_tag_std_devs

        robot_position = _planar(estimate.pose)
        num_tags = 0
        total_distance: meters = 0.0

        for observation in observations:
            tag_pose = lookup(observation.fiducial_id)
            if tag_pose is None:
                continue

            num_tags += 1
            total_distance += _planar(tag_pose).distance(robot_position)

        if num_tags == 0:
            return self._single_tag_std_devs

        avg_distance: meters = total_distance / num_tags

        # Baseline is picked by tag count before the single tag distance check
        baseline = self._multi_tag_std_devs if num_tags > 1 else self._single_tag_std_devs

        if num_tags == 1 and avg_distance > self._max_single_tag_distance:
            logger.debug(f"Single tag at {avg_distance:.2f}m is too far away to trust")
            return MAX_STD_DEVS

        scale = 1 + (avg_distance * avg_distance / self._distance_scale)
        return baseline[0] * scale, baseline[1] * scale, baseline[2] * scale
