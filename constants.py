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
#
# Constants for the vision and swerve drive subsystems

from enum import IntEnum, unique

from robotpy_apriltag import AprilTagField
from wpimath.geometry import Rotation3d, Transform3d, Translation3d
from wpimath.units import degreesToRadians, inchesToMeters, meters, meters_per_second, \
    radians_per_second, rotationsToRadians, seconds

# The period is available from robot.getPeriod() and the following provides
# a default value in case it returns 0 or None
DEFAULT_ROBOT_FREQUENCY: seconds = 1.0 / 50

##################################################################
# Drive subsystem related constants
#
# Maximum speed of the robot in meters per second, used to scale joystick
# inputs of [-1..1] into chassis speeds.

MAX_SPEED: meters_per_second = 4.5  # TODO: Measure this on the competition robot
MAX_ANGULAR_SPEED: radians_per_second = rotationsToRadians(0.75)

# Joystick Deadband
JOYSTICK_DEADBAND = 0.1

# Hold time on motor brakes when disabled
WHEEL_LOCK_TIME: seconds = 10

# Heading controller (kP, kI, kD) used to turn a target heading into an angular velocity.
# Output is scaled by MAX_ANGULAR_SPEED
HEADING_PID = (0.4, 0.0, 0.01)

# SysId characterization timing. Delay between tests and the timeout for each test
SYSID_DELAY: seconds = 3.0
SYSID_QUASISTATIC_TIMEOUT: seconds = 5.0
SYSID_DYNAMIC_TIMEOUT: seconds = 3.0

# PathPlanner holonomic controller PID constants (kP, kI, kD)
PATHPLANNER_TRANSLATION_PID = (5.0, 0.0, 0.0)
PATHPLANNER_ROTATION_PID = (5.0, 0.0, 0.0)

# Fake vision reading used to check pose fusion on the bench
FAKE_VISION_POSE = (3.0, 3.0, degreesToRadians(65.0))

#################################################################################
# Field layout.  The first entry is the default

FIELD_INFO = (
    ("Reefscape (Welded)", AprilTagField.k2025ReefscapeWelded, "2025-reefscape-welded.json"),
    ("Reefscape (AndyMark)", AprilTagField.k2025ReefscapeAndyMark, "2025-reefscape-andymark.json"),
)
DEFAULT_APRILTAG_FIELD = FIELD_INFO[0][1]

#################################################################################
# Camera configurations


@unique
class VisionPipeline(IntEnum):
    """PhotonVision pipeline indexes as configured in the PhotonVision UI"""
    THREE_D_APRIL_TAG = 0
    TWO_D_APRIL_TAG = 1


PRIMARY_CAMERA_INFO = {
    "Name"     : "PRIMARY",
    "Transform": Transform3d(Translation3d(x=inchesToMeters(-5.0), y=inchesToMeters(0.0), z=inchesToMeters(12.0)),
                             Rotation3d(0.0, 0.0, degreesToRadians(0.0))),
}

#################################################################################
# Vision pose standard deviations [x, y, theta] in meters and radians.
#
# Adjusted automatically based on distance and number of tags. Larger values
# mean the pose estimator trusts the vision measurement less.

SINGLE_TAG_STD_DEVS = (4.0, 4.0, 8.0)
MULTI_TAG_STD_DEVS = (0.5, 0.5, 1.0)

# A single tag further away than this is not trusted at all
MAX_SINGLE_TAG_DISTANCE: meters = 4.0

# Standard deviations grow by (1 + distance^2 / TAG_DISTANCE_SCALE)
TAG_DISTANCE_SCALE = 30.0

# How often (in robot loops) dashboard values are refreshed
DASHBOARD_ENABLED_DIVISOR = 10
DASHBOARD_DISABLED_DIVISOR = 20
