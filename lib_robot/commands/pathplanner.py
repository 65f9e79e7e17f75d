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
from typing import Optional

from pathplannerlib.auto import AutoBuilder
from pathplannerlib.auto import RobotConfig
from pathplannerlib.controller import PIDConstants, PPHolonomicDriveController
from pathplannerlib.util import DriveFeedforwards
from wpilib import getDeployDirectory, SendableChooser
from wpimath.kinematics import ChassisSpeeds

import constants
from lib_robot.subsystems.swervedrive.swervesubsystem import SwerveSubsystem

logger = logging.getLogger(__name__)


def settings_path() -> str:
    return os.path.join(getDeployDirectory(), 'pathplanner', 'settings.json')


def configure_auto_builder(drive: SwerveSubsystem,
                           default_command: Optional[str] = "") -> Optional[SendableChooser]:
    """
    Configure the PathPlanner AutoBuilder to follow paths with our swerve drive and
    return a chooser with all of the autos found in the deploy directory.

    Returns None if the PathPlanner settings have not been deployed yet.
    """
    file_path = settings_path()

    if not os.path.isfile(file_path) or not os.access(file_path, os.R_OK):
        logger.error(f"PathPlanner settings {file_path} not found or is not readable")
        logger.error("Assuming this is an initial run before creating first Paths/Autos")
        return None

    config = RobotConfig.fromGUISettings()

    def drive_robot_relative(speeds: ChassisSpeeds, feedforwards: DriveFeedforwards) -> None:
        drive.drivetrain.set_control(
            drive.apply_robot_speeds
            .with_speeds(ChassisSpeeds.discretize(speeds, constants.DEFAULT_ROBOT_FREQUENCY))
            .with_wheel_force_feedforwards_x(feedforwards.robotRelativeForcesXNewtons)
            .with_wheel_force_feedforwards_y(feedforwards.robotRelativeForcesYNewtons)
        )

    AutoBuilder.configure(drive.get_pose,             # Supplier of current robot pose
                          drive.reset_odometry,       # Consumer for seeding pose against auto
                          drive.get_robot_velocity,   # Supplier of current robot relative speeds
                          drive_robot_relative,       # Consumer of ChassisSpeeds and feedforwards
                          PPHolonomicDriveController(
                              # PID constants for translation
                              PIDConstants(*constants.PATHPLANNER_TRANSLATION_PID),
                              # PID constants for rotation
                              PIDConstants(*constants.PATHPLANNER_ROTATION_PID)
                          ),
                          config,
                          # Paths are drawn for the blue alliance, flip them when on red.
                          # The origin remains on the blue side
                          SwerveSubsystem.is_red_alliance,
                          drive  # Subsystem for requirements
                          )
    logger.info("PathPlanner AutoBuilder configured")

    # Load in any Autonomous Commands into the chooser
    return AutoBuilder.buildAutoChooser(default_command)
