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

from unittest.mock import MagicMock, patch

import pytest
from commands2 import cmd, Command
from commands2.sysid import SysIdRoutine
from phoenix6 import swerve
from phoenix6.signals import NeutralModeValue
from wpimath.geometry import Pose2d, Rotation2d, Translation2d
from wpimath.kinematics import ChassisSpeeds

import constants
from lib_robot.subsystems.swervedrive.swervesubsystem import SwerveSubsystem

MAX_SPEED = 4.0
MAX_ANGULAR_RATE = 2.0


@pytest.fixture
def drivetrain() -> MagicMock:
    drivetrain = MagicMock()
    drivetrain.get_state.return_value.pose = Pose2d(1.0, 2.0, Rotation2d.fromDegrees(90))
    drivetrain.get_state.return_value.speeds = ChassisSpeeds(1.0, 0.0, 0.0)
    return drivetrain


@pytest.fixture
def drive(drivetrain) -> SwerveSubsystem:
    return SwerveSubsystem(drivetrain, MAX_SPEED, MAX_ANGULAR_RATE)


def last_request(drivetrain: MagicMock):
    return drivetrain.set_control.call_args[0][0]


def test_brake_mode_on_init(drive, drivetrain):
    drivetrain.config_neutral_mode.assert_called_once_with(NeutralModeValue.BRAKE)

    drive.set_motor_brake(False)
    drivetrain.config_neutral_mode.assert_called_with(NeutralModeValue.COAST)


def test_pose_and_heading(drive, drivetrain):
    assert drive.get_pose() == Pose2d(1.0, 2.0, Rotation2d.fromDegrees(90))
    assert drive.get_heading().degrees() == pytest.approx(90.0)

    new_pose = Pose2d(5.0, 5.0, Rotation2d())
    drive.reset_odometry(new_pose)
    drivetrain.reset_pose.assert_called_once_with(new_pose)


def test_velocities(drive):
    assert drive.get_robot_velocity().vx == pytest.approx(1.0)

    # Robot facing +y, so robot forward is field +y
    field_speeds = drive.get_field_velocity()
    assert field_speeds.vx == pytest.approx(0.0, abs=1e-9)
    assert field_speeds.vy == pytest.approx(1.0)


def test_drive_command_field_relative(drive, drivetrain):
    command = drive.drive_command(lambda: 0.5, lambda: -0.25, lambda: 1.0)
    command.execute()

    request = last_request(drivetrain)
    assert isinstance(request, swerve.requests.FieldCentric)
    assert request.velocity_x == pytest.approx(0.5 * MAX_SPEED)
    assert request.velocity_y == pytest.approx(-0.25 * MAX_SPEED)
    assert request.rotational_rate == pytest.approx(MAX_ANGULAR_RATE)
    assert request.drive_request_type == swerve.SwerveModule.DriveRequestType.OPEN_LOOP_VOLTAGE


def test_drive_command_robot_relative_closed_loop(drive, drivetrain):
    command = drive.drive_command(lambda: 1.0, lambda: 0.0, lambda: 0.0,
                                  field_relative=False, open_loop=False)
    command.execute()

    request = last_request(drivetrain)
    assert isinstance(request, swerve.requests.RobotCentric)
    assert request.velocity_x == pytest.approx(MAX_SPEED)
    assert request.drive_request_type == swerve.SwerveModule.DriveRequestType.VELOCITY


def test_drive_command_requires_subsystem(drive):
    command = drive.drive_command(lambda: 0.0, lambda: 0.0, lambda: 0.0)

    assert drive in command.getRequirements()


def test_set_chassis_speeds(drive, drivetrain):
    drive.set_chassis_speeds(ChassisSpeeds(0.5, 0.25, 0.1))

    request = last_request(drivetrain)
    assert isinstance(request, swerve.requests.ApplyRobotSpeeds)
    assert request.speeds.vx == pytest.approx(0.5)
    assert request.speeds.omega == pytest.approx(0.1)


def test_lock(drive, drivetrain):
    drive.lock()

    assert isinstance(last_request(drivetrain), swerve.requests.SwerveDriveBrake)


def test_add_vision_measurement_converts_timestamp(drive, drivetrain):
    pose = Pose2d(3.0, 4.0, Rotation2d())

    with patch("phoenix6.utils.fpga_to_current_time", side_effect=lambda t: t + 100.0):
        drive.add_vision_measurement(pose, 2.0, (0.5, 0.5, 1.0))

    drivetrain.add_vision_measurement.assert_called_once_with(pose, 102.0, (0.5, 0.5, 1.0))


def test_add_fake_vision_reading(drive, drivetrain):
    drive.add_fake_vision_reading()

    pose = drivetrain.add_vision_measurement.call_args[0][0]
    assert pose.translation() == Translation2d(3.0, 3.0)
    assert pose.rotation().degrees() == pytest.approx(65.0)


def test_zero_gyro_blue_alliance(drive, drivetrain):
    with patch.object(SwerveSubsystem, "is_red_alliance", return_value=False):
        drive.zero_gyro_with_alliance()

    drivetrain.reset_rotation.assert_called_once_with(Rotation2d())
    drivetrain.reset_pose.assert_not_called()


def test_zero_gyro_red_alliance(drive, drivetrain):
    with patch.object(SwerveSubsystem, "is_red_alliance", return_value=True):
        drive.zero_gyro_with_alliance()

    drivetrain.reset_rotation.assert_called_once_with(Rotation2d())

    pose = drivetrain.reset_pose.call_args[0][0]
    assert pose.translation() == Translation2d(1.0, 2.0)
    assert pose.rotation().degrees() == pytest.approx(180.0)


def test_kinematics_forwarded(drive, drivetrain):
    assert drive.get_kinematics() is drivetrain.kinematics


def test_sys_id_routine_selection(drive):
    drive.sys_id_select("steer")
    drive.sys_id_select("translation")

    with pytest.raises(KeyError):
        drive.sys_id_select("rotation")


def test_cube_translation():
    cubed = SwerveSubsystem.cube_translation(Translation2d(0.5, 0.0))
    assert cubed.X() == pytest.approx(0.125)
    assert cubed.Y() == pytest.approx(0.0, abs=1e-9)

    # Direction is kept, only the magnitude is cubed
    cubed = SwerveSubsystem.cube_translation(Translation2d(0.0, -0.5))
    assert cubed.Y() == pytest.approx(-0.125)

    assert SwerveSubsystem.cube_translation(Translation2d()) == Translation2d()


def test_target_speeds_at_heading(drive):
    speeds = drive.get_target_speeds_to_angle(0.5, 0.0, Rotation2d.fromDegrees(90))

    assert speeds.vx == pytest.approx(0.125 * MAX_SPEED)
    assert speeds.vy == pytest.approx(0.0, abs=1e-9)
    assert speeds.omega == pytest.approx(0.0, abs=1e-9)


def test_target_speeds_turns_toward_angle(drive):
    # Robot faces 90 degrees, target of 0 degrees is a clockwise (negative) turn
    speeds = drive.get_target_speeds_to_angle(0.0, 0.0, Rotation2d.fromDegrees(0))
    assert speeds.omega < 0.0

    speeds = drive.get_target_speeds_to_angle(0.0, 0.0, Rotation2d.fromDegrees(120))
    assert speeds.omega > 0.0


def test_target_speeds_from_heading_joystick(drive):
    # Heading stick pushed along +x points at 90 degrees, which the robot already faces
    speeds = drive.get_target_speeds(0.0, 1.0, 1.0, 0.0)

    assert speeds.vx == pytest.approx(0.0, abs=1e-9)
    assert speeds.vy == pytest.approx(MAX_SPEED)
    assert speeds.omega == pytest.approx(0.0, abs=1e-9)


def test_target_speeds_hold_heading_in_deadband(drive):
    # Nothing requested yet, so the current heading is held
    speeds = drive.get_target_speeds(0.0, 0.0, 0.0, 0.0)
    assert speeds.omega == pytest.approx(0.0, abs=1e-9)

    drive.get_target_speeds_to_angle(0.0, 0.0, Rotation2d.fromDegrees(0))

    # Released heading stick keeps turning toward the last target
    speeds = drive.get_target_speeds(0.0, 0.0, 0.05, 0.05)
    assert speeds.omega < 0.0


@pytest.mark.parametrize("name, factory", [
    ("translation", SwerveSubsystem.sys_id_drive_motor_command),
    ("steer", SwerveSubsystem.sys_id_angle_motor_command),
])
def test_sys_id_full_sequence(drive, name, factory):
    routine = MagicMock()
    routine.quasistatic.side_effect = lambda direction: cmd.none()
    routine.dynamic.side_effect = lambda direction: cmd.none()
    drive._sys_id_routines[name] = routine

    command = factory(drive)

    assert isinstance(command, Command)
    assert [c.args[0] for c in routine.quasistatic.call_args_list] == [SysIdRoutine.Direction.kForward,
                                                                       SysIdRoutine.Direction.kReverse]
    assert [c.args[0] for c in routine.dynamic.call_args_list] == [SysIdRoutine.Direction.kForward,
                                                                   SysIdRoutine.Direction.kReverse]


def test_brakes_released_after_disabled(drive, drivetrain):
    drive._disabled_timer = MagicMock()
    drive._disabled_timer.hasElapsed.return_value = False

    drive.disabled_init()
    drive._disabled_timer.start.assert_called_once()

    drive.disabled_periodic()
    drive._disabled_timer.hasElapsed.assert_called_with(constants.WHEEL_LOCK_TIME)
    drivetrain.config_neutral_mode.assert_called_with(NeutralModeValue.BRAKE)

    drive._disabled_timer.hasElapsed.return_value = True
    drive.disabled_periodic()
    drivetrain.config_neutral_mode.assert_called_with(NeutralModeValue.COAST)
    drive._disabled_timer.stop.assert_called()

    drive.disabled_exit()
    drivetrain.config_neutral_mode.assert_called_with(NeutralModeValue.BRAKE)
