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
import math
from typing import Callable, Dict, Optional

from commands2 import cmd, Command, Subsystem
from commands2.sysid import SysIdRoutine
from phoenix6 import SignalLogger, swerve, utils
from phoenix6.signals import NeutralModeValue
from wpilib import DriverStation, Field2d, SmartDashboard, Timer
from wpilib.sysid import SysIdRoutineLog
from wpimath.controller import PIDController
from wpimath.geometry import Pose2d, Rotation2d, Translation2d
from wpimath.kinematics import ChassisSpeeds, SwerveDrive4Kinematics
from wpimath.trajectory import Trajectory
from wpimath.units import meters_per_second, radians_per_second, seconds

import constants

logger = logging.getLogger(__name__)

DoubleSupplier = Callable[[], float]


class SwerveSubsystem(Subsystem):
    """
    Swerve drive subsystem.

    All of the kinematics, odometry, module control and pose estimation is done by the
    Phoenix6 swerve drivetrain that this subsystem wraps. The drivetrain is normally the
    one created from the Tuner X generated constants.
    """
    _BLUE_ALLIANCE_PERSPECTIVE_ROTATION = Rotation2d.fromDegrees(0)
    """Blue alliance sees forward as 0 degrees (toward red alliance wall)"""
    _RED_ALLIANCE_PERSPECTIVE_ROTATION = Rotation2d.fromDegrees(180)
    """Red alliance sees forward as 180 degrees (toward blue alliance wall)"""

    def __init__(self, drivetrain: swerve.SwerveDrivetrain,
                 max_speed: meters_per_second = constants.MAX_SPEED,
                 max_angular_rate: radians_per_second = constants.MAX_ANGULAR_SPEED,
                 field: Optional[Field2d] = None) -> None:
        super().__init__()

        self._drivetrain = drivetrain
        self._max_speed: meters_per_second = max_speed
        self._max_angular_rate: radians_per_second = max_angular_rate
        self._field: Field2d = field or Field2d()
        self._counter = 0

        self._has_applied_operator_perspective = False
        """Keep track if we've ever applied the operator perspective before or not"""

        # Swerve requests. Joystick deadband is applied to both speed and rotation
        self._field_centric = (swerve.requests.FieldCentric()
                               .with_deadband(max_speed * constants.JOYSTICK_DEADBAND)
                               .with_rotational_deadband(max_angular_rate * constants.JOYSTICK_DEADBAND))
        self._robot_centric = (swerve.requests.RobotCentric()
                               .with_deadband(max_speed * constants.JOYSTICK_DEADBAND)
                               .with_rotational_deadband(max_angular_rate * constants.JOYSTICK_DEADBAND))
        self._brake = swerve.requests.SwerveDriveBrake()

        # Swerve request to apply during path following
        self.apply_robot_speeds = swerve.requests.ApplyRobotSpeeds()

        # Swerve requests to apply during SysId characterization
        self._translation_characterization = swerve.requests.SysIdSwerveTranslation()
        self._steer_characterization = swerve.requests.SysIdSwerveSteerGains()

        self._sys_id_routines: Dict[str, SysIdRoutine] = {
            "translation": self._sys_id_routine("SysIdTranslation_State", 4.0,
                                                lambda volts: self._translation_characterization.with_volts(volts)),
            "steer": self._sys_id_routine("SysIdSteer_State", 7.0,
                                          lambda volts: self._steer_characterization.with_volts(volts)),
        }
        self._sys_id_routine_to_apply = self._sys_id_routines["translation"]
        """The SysId routine to test"""

        # Heading controller used to turn joystick or target headings into an angular velocity
        self._heading_controller = PIDController(*constants.HEADING_PID)
        self._heading_controller.enableContinuousInput(-math.pi, math.pi)
        self._last_target_angle: Optional[float] = None

        # Motors are released to coast some time after the robot is disabled
        self._disabled_timer = Timer()

        # Set motors to brake mode
        self.set_motor_brake(True)

    def _sys_id_routine(self, state_name: str, step_voltage: float,
                        request: Callable[[float], swerve.requests.SwerveRequest]) -> SysIdRoutine:
        return SysIdRoutine(
            SysIdRoutine.Config(
                # Use default ramp rate (1 V/s) and timeout (10 s)
                stepVoltage=step_voltage,
                # Log state with SignalLogger class
                recordState=lambda state: SignalLogger.write_string(
                    state_name, SysIdRoutineLog.stateEnumToString(state)
                ) and None,
            ),
            SysIdRoutine.Mechanism(
                lambda output: self._drivetrain.set_control(request(output)),
                lambda log: None,
                self,
            ),
        )

    @property
    def drivetrain(self) -> swerve.SwerveDrivetrain:
        return self._drivetrain

    @property
    def field(self) -> Field2d:
        return self._field

    @property
    def max_speed(self) -> meters_per_second:
        return self._max_speed

    @property
    def max_angular_rate(self) -> radians_per_second:
        return self._max_angular_rate

    def drive_command(self, translation_x: DoubleSupplier, translation_y: DoubleSupplier,
                      angular_rotation: DoubleSupplier, field_relative: bool = True,
                      open_loop: bool = True) -> Command:
        """
        Command to drive the robot using translative values and heading as angular velocity.

        :param translation_x:    Translation in the X direction (forward) [-1..1]
        :param translation_y:    Translation in the Y direction (left) [-1..1]
        :param angular_rotation: Angular velocity of the robot to set [-1..1]
        :param field_relative:   Drive relative to the field rather than the robot
        :param open_loop:        Open-loop voltage (more responsive, auton) or closed-loop
                                 velocity (more precise, teleop)
        :returns: Drive command
        """
        request = self._field_centric if field_relative else self._robot_centric
        request_type = swerve.SwerveModule.DriveRequestType.OPEN_LOOP_VOLTAGE if open_loop \
            else swerve.SwerveModule.DriveRequestType.VELOCITY

        def drive() -> None:
            self._drivetrain.set_control(
                request.with_velocity_x(translation_x() * self._max_speed)
                .with_velocity_y(translation_y() * self._max_speed)
                .with_rotational_rate(angular_rotation() * self._max_angular_rate)
                .with_drive_request_type(request_type)
            )

        return self.run(drive)

    def get_pose(self) -> Pose2d:
        """
        The current pose (position and rotation) of the robot, as reported by odometry.
        """
        return self._drivetrain.get_state().pose

    def reset_odometry(self, pose: Pose2d) -> None:
        """
        Resets odometry to the given pose. Gyro angle and module positions do not need to be
        reset when calling this method.
        """
        self._drivetrain.reset_pose(pose)

    def get_heading(self) -> Rotation2d:
        """
        The yaw of the robot from the pose estimator. This is not the raw gyro reading and
        may have been corrected by 'reset_odometry'.
        """
        return self.get_pose().rotation()

    def get_robot_velocity(self) -> ChassisSpeeds:
        return self._drivetrain.get_state().speeds

    def get_field_velocity(self) -> ChassisSpeeds:
        return ChassisSpeeds.fromRobotRelativeSpeeds(self.get_robot_velocity(), self.get_heading())

    @staticmethod
    def cube_translation(translation: Translation2d) -> Translation2d:
        """
        Cube the magnitude of a joystick translation, keeping its direction. Gives finer
        control at low speeds.
        """
        if translation.norm() < 1e-6:
            return translation

        return Translation2d(translation.norm() ** 3, translation.angle())

    def get_target_speeds(self, x_input: float, y_input: float,
                          heading_x: float, heading_y: float) -> ChassisSpeeds:
        """
        Field relative chassis speeds from two joysticks. One for the direction to travel,
        the other points in the direction the robot should face. While the heading joystick
        is inside the deadband the last target heading is held.

        :param x_input:   X joystick input for the robot to move in the X direction [-1..1]
        :param y_input:   Y joystick input for the robot to move in the Y direction [-1..1]
        :param heading_x: X joystick which controls the angle of the robot
        :param heading_y: Y joystick which controls the angle of the robot
        """
        if math.hypot(heading_x, heading_y) < constants.JOYSTICK_DEADBAND:
            angle = self._last_target_angle
            if angle is None:
                angle = self.get_heading().radians()
        else:
            angle = math.atan2(heading_x, heading_y)

        return self.get_target_speeds_to_angle(x_input, y_input, Rotation2d(angle))

    def get_target_speeds_to_angle(self, x_input: float, y_input: float,
                                   angle: Rotation2d) -> ChassisSpeeds:
        """
        Field relative chassis speeds from one joystick and a heading to turn toward.

        :param x_input: X joystick input for the robot to move in the X direction [-1..1]
        :param y_input: Y joystick input for the robot to move in the Y direction [-1..1]
        :param angle:   Heading the robot should face
        """
        scaled = self.cube_translation(Translation2d(x_input, y_input))
        self._last_target_angle = angle.radians()

        omega = self._heading_controller.calculate(self.get_heading().radians(), angle.radians())

        return ChassisSpeeds(scaled.X() * self._max_speed,
                             scaled.Y() * self._max_speed,
                             omega * self._max_angular_rate)

    def set_chassis_speeds(self, speeds: ChassisSpeeds) -> None:
        """
        Set robot relative chassis speeds with closed-loop velocity control.
        """
        self._drivetrain.set_control(
            self.apply_robot_speeds.with_speeds(speeds)
            .with_drive_request_type(swerve.SwerveModule.DriveRequestType.VELOCITY)
        )

    def get_kinematics(self) -> SwerveDrive4Kinematics:
        return self._drivetrain.kinematics

    def post_trajectory(self, trajectory: Trajectory) -> None:
        self._field.getObject("Trajectory").setTrajectory(trajectory)

    def zero_gyro(self) -> None:
        """
        Resets the heading to zero, keeping the current position.
        """
        self._drivetrain.reset_rotation(Rotation2d())

    @staticmethod
    def is_red_alliance() -> bool:
        """
        True if on the red alliance. Defaults to blue if the alliance is not available.
        """
        return DriverStation.getAlliance() == DriverStation.Alliance.kRed

    def zero_gyro_with_alliance(self) -> None:
        """
        Assume the robot is currently facing away from our driver station. On the red
        alliance that is a heading of 180 degrees.
        """
        self.zero_gyro()

        if self.is_red_alliance():
            self.reset_odometry(Pose2d(self.get_pose().translation(), Rotation2d.fromDegrees(180)))

    def set_motor_brake(self, brake: bool) -> None:
        self._drivetrain.config_neutral_mode(NeutralModeValue.BRAKE if brake else NeutralModeValue.COAST)

    def lock(self) -> None:
        """
        Point all the modules toward the center of the robot to prevent it from moving
        """
        self._drivetrain.set_control(self._brake)

    def add_vision_measurement(self, vision_robot_pose: Pose2d, timestamp: seconds,
                               vision_measurement_std_devs: tuple[float, float, float] | None = None) -> None:
        """
        Adds a vision measurement to the Kalman Filter. This will correct the
        odometry pose estimate while still accounting for measurement noise.

        :param vision_robot_pose:           The pose of the robot as measured by the vision camera.
        :param timestamp:                   The FPGA timestamp of the vision measurement in seconds.
        :param vision_measurement_std_devs: Standard deviations of the vision pose measurement
                                            in the form [x, y, theta]ᵀ, with units in meters
                                            and radians.
        """
        self._drivetrain.add_vision_measurement(vision_robot_pose,
                                                utils.fpga_to_current_time(timestamp),
                                                vision_measurement_std_devs)

    def add_fake_vision_reading(self) -> None:
        """
        Add a fake vision reading for testing purposes.
        """
        x, y, heading = constants.FAKE_VISION_POSE
        self.add_vision_measurement(Pose2d(Translation2d(x, y), Rotation2d(heading)),
                                    Timer.getFPGATimestamp())

    def sys_id_select(self, name: str) -> None:
        """
        Select the SysId routine ("translation" or "steer") to run
        """
        self._sys_id_routine_to_apply = self._sys_id_routines[name]
        logger.info(f"SysId routine selected: {name}")

    def sys_id_quasistatic(self, direction: SysIdRoutine.Direction) -> Command:
        return self._sys_id_routine_to_apply.quasistatic(direction)

    def sys_id_dynamic(self, direction: SysIdRoutine.Direction) -> Command:
        return self._sys_id_routine_to_apply.dynamic(direction)

    @staticmethod
    def _sys_id_sequence(routine: SysIdRoutine) -> Command:
        """
        Full characterization run: quasistatic forward and reverse, then dynamic forward
        and reverse, pausing between each test so the robot can come to rest.
        """
        delay = constants.SYSID_DELAY

        return cmd.sequence(
            routine.quasistatic(SysIdRoutine.Direction.kForward).withTimeout(constants.SYSID_QUASISTATIC_TIMEOUT),
            cmd.waitSeconds(delay),
            routine.quasistatic(SysIdRoutine.Direction.kReverse).withTimeout(constants.SYSID_QUASISTATIC_TIMEOUT),
            cmd.waitSeconds(delay),
            routine.dynamic(SysIdRoutine.Direction.kForward).withTimeout(constants.SYSID_DYNAMIC_TIMEOUT),
            cmd.waitSeconds(delay),
            routine.dynamic(SysIdRoutine.Direction.kReverse).withTimeout(constants.SYSID_DYNAMIC_TIMEOUT),
        )

    def sys_id_drive_motor_command(self) -> Command:
        """
        Command to characterize the drive motors using SysId
        """
        return self._sys_id_sequence(self._sys_id_routines["translation"])

    def sys_id_angle_motor_command(self) -> Command:
        """
        Command to characterize the steer (angle) motors using SysId
        """
        return self._sys_id_sequence(self._sys_id_routines["steer"])

    def disabled_init(self) -> None:
        """
        Robot was disabled. Start the timer that releases the brakes.
        """
        self._disabled_timer.reset()
        self._disabled_timer.start()

    def disabled_periodic(self) -> None:
        # Hold the brakes for a while so a robot on a slope does not roll, then allow
        # it to be pushed around by hand
        if self._disabled_timer.hasElapsed(constants.WHEEL_LOCK_TIME):
            self.set_motor_brake(False)
            self._disabled_timer.stop()
            self._disabled_timer.reset()

    def disabled_exit(self) -> None:
        self._disabled_timer.stop()
        self._disabled_timer.reset()
        self.set_motor_brake(True)

    def periodic(self) -> None:
        self._counter += 1

        # Periodically try to apply the operator perspective.
        # If we haven't applied the operator perspective before, then we should apply it regardless of DS state.
        # Otherwise, only check and apply the operator perspective if the DS is disabled.
        if not self._has_applied_operator_perspective or DriverStation.isDisabled():
            alliance_color = DriverStation.getAlliance()
            if alliance_color is not None:
                self._drivetrain.set_operator_perspective_forward(
                    self._RED_ALLIANCE_PERSPECTIVE_ROTATION
                    if alliance_color == DriverStation.Alliance.kRed
                    else self._BLUE_ALLIANCE_PERSPECTIVE_ROTATION
                )
                self._has_applied_operator_perspective = True

        self.dashboard_periodic()

    def dashboard_periodic(self) -> None:
        """
        Called from periodic function to update dashboard elements for this subsystem
        """
        divisor = constants.DASHBOARD_ENABLED_DIVISOR if DriverStation.isEnabled() \
            else constants.DASHBOARD_DISABLED_DIVISOR

        if self._counter % divisor == 0:
            pose = self.get_pose()
            self._field.setRobotPose(pose)

            SmartDashboard.putNumber("Drivetrain/x", pose.X())
            SmartDashboard.putNumber("Drivetrain/y", pose.Y())
            SmartDashboard.putNumber("Drivetrain/heading", pose.rotation().degrees())
