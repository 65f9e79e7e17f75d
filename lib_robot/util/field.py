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
import os
from typing import Callable, List, Optional, Sequence, Tuple

from robotpy_apriltag import AprilTag, AprilTagField, AprilTagFieldLayout
from wpilib import getDeployDirectory
from wpimath.geometry import Pose3d
from wpimath.units import meters

import constants

# Setup Logging
logger = logging.getLogger(__name__)

FieldInfo = Sequence[Tuple[str, Optional[AprilTagField], str]]
LayoutCallback = Callable[[Optional[AprilTagField], Optional[AprilTagFieldLayout]], None]


class Field:
    """
    AprilTag field layout for the current game.

    When looking at the playing field, the origin is 0,0 (bottom left corner in landscape
    mode) with the Blue team on the left (lowest x-coordinate).

    If the layout cannot be loaded, every tag lookup returns None and vision pose
    estimates fall back to the default (untrusting) standard deviations.

    All values are in meters
    """
    _field_info: FieldInfo = constants.FIELD_INFO

    def __init__(self, field: Optional[AprilTagField] = constants.DEFAULT_APRILTAG_FIELD):
        # Map AprilTagField to backup file mapping
        self._file_map = {tag_field: file for _, tag_field, file in self._field_info}

        # Callbacks when field layout changes
        self._layout_callbacks: List[LayoutCallback] = []

        self._field: Optional[AprilTagField] = None
        self._layout: Optional[AprilTagFieldLayout] = None

        self.load(field)

    @property
    def field(self) -> Optional[AprilTagField]:
        return self._field

    @property
    def layout(self) -> Optional[AprilTagFieldLayout]:
        return self._layout

    @property
    def field_length(self) -> meters:
        """
        x maximum
        """
        return self._layout.getFieldLength() if self._layout else 0

    @property
    def field_width(self) -> meters:
        """
        y maximum
        """
        return self._layout.getFieldWidth() if self._layout else 0

    @property
    def tags(self) -> Optional[List[AprilTag]]:
        return self._layout.getTags() if self._layout else None

    def get_tag_pose(self, tag_id: int) -> Optional[Pose3d]:
        return self._layout.getTagPose(tag_id) if self._layout else None

    def register_layout_callback(self, func: LayoutCallback) -> None:
        self._layout_callbacks.append(func)

    def load(self, field: Optional[AprilTagField]) -> None:
        """
        Load up the selected field
        """
        existing = (self._field, self._layout)
        self._field, self._layout = field, None

        if field is not None:
            try:
                # Get from library first
                self._layout = AprilTagFieldLayout.loadField(field)
                logger.info(f"AprilTagLayout loaded for field {field}")

            except Exception as _e:
                self._layout = self._load_from_deploy(field)

        # Any callbacks needed
        if existing != (self._field, self._layout):
            for func in self._layout_callbacks:
                func(self._field, self._layout)

    def _load_from_deploy(self, field: AprilTagField) -> Optional[AprilTagFieldLayout]:
        # Fallback to directory load method
        april_tag_dir = os.path.join(getDeployDirectory(), 'fields', 'apriltags')

        if not os.path.isdir(april_tag_dir) or not os.access(april_tag_dir, os.R_OK):
            logger.warning(f"AprilTag directory {april_tag_dir} does not exist or is not accessible")
            return None

        filename = self._file_map.get(field)
        if not filename:
            logger.warning(f"No AprilTag JSON file known for field {field}")
            return None

        file_path = os.path.join(april_tag_dir, filename)
        try:
            layout = AprilTagFieldLayout(file_path)
            logger.info(f"AprilTagLayout field {field} loaded from {file_path}")
            return layout

        except Exception as _e:
            logger.warning(f"AprilTag JSON {file_path} does not exist or is not valid")
            return None
