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
from typing import Callable, List, Optional

from commands2 import Subsystem
from photonlibpy import PhotonCamera, PhotonPoseEstimator
from photonlibpy.estimatedRobotPose import EstimatedRobotPose
from photonlibpy.targeting.photonPipelineResult import PhotonPipelineResult
from robotpy_apriltag import AprilTagField, AprilTagFieldLayout
from wpilib import Alert, DriverStation, SmartDashboard
from wpimath.geometry import Pose2d, Pose3d, Transform3d
from wpimath.units import seconds

import constants
from constants import VisionPipeline
from lib_robot.subsystems.vision.std_devs import PoseEstimate, StdDevEstimator, StdDevs, TagObservation
from lib_robot.util.field import Field

logger = logging.getLogger(__name__)

VisionConsumer = Callable[[Pose2d, seconds, tuple[float, float, float] | None], None]


class VisionSubsystem(Subsystem):
    """
    PhotonVision camera subsystem

    Camera frames are handed to the PhotonVision pose estimator (multi-tag solve on the
    coprocessor, falling back to the lowest ambiguity single tag) and every estimate is
    given dynamic standard deviations based on how many tags were used and how far away
    they were.

    Currently only a single camera per vision subsystem is supported.
    """
    def __init__(self, vision_input: Optional[VisionConsumer],
                 camera_name: str, field: Field, transform: Transform3d,
                 camera: Optional[PhotonCamera] = None,
                 estimator: Optional[PhotonPoseEstimator] = None,
                 std_devs: Optional[StdDevEstimator] = None):
        super().__init__()

        self._name = camera_name
        self._vision_input = vision_input
        self._field = field
        self._camera_transform: Transform3d = transform

        self._camera: PhotonCamera = camera or PhotonCamera(camera_name)
        self._estimator: PhotonPoseEstimator = estimator or PhotonPoseEstimator(field.layout, transform)
        self._std_devs: StdDevEstimator = std_devs or StdDevEstimator()

        self._last_estimate: Optional[EstimatedRobotPose] = None
        self._counter = 0
        self._connected = True

        self._disconnected_alert = Alert(f"Vision camera {camera_name} is disconnected",
                                         Alert.AlertType.kWarning)

        # Register for field layout changes
        field.register_layout_callback(self._on_field_change)

        self.dashboard_initialize()

    @staticmethod
    def create(vision_input: Optional[VisionConsumer], info: dict, field: Field, **kwargs) -> 'VisionSubsystem':
        """
        Create a camera subsystem from one of the camera configurations in constants.py
        (for example PRIMARY_CAMERA_INFO). Extra keyword arguments are passed to the constructor.
        """
        return VisionSubsystem(vision_input, info["Name"], field, info["Transform"], **kwargs)

    @property
    def name(self) -> str:
        return self._name

    @property
    def camera_transform(self) -> Transform3d:
        return self._camera_transform

    @property
    def last_estimate(self) -> Optional[EstimatedRobotPose]:
        return self._last_estimate

    @property
    def connected(self) -> bool:
        return self._camera.isConnected()

    @property
    def pipeline(self) -> int:
        return self._camera.getPipelineIndex()

    @pipeline.setter
    def pipeline(self, index: int) -> None:
        # Raises ValueError for an unknown pipeline index
        self._camera.setPipelineIndex(int(VisionPipeline(index)))

    def _on_field_change(self, field: Optional[AprilTagField], layout: Optional[AprilTagFieldLayout]) -> None:
        """
        Operator selected a different field layout.
        """
        logger.info(f"Camera {self.name}: field layout changed to {field}")
        self._estimator.fieldTags = layout

    def _tag_pose(self, tag_id: int) -> Optional[Pose3d]:
        layout: Optional[AprilTagFieldLayout] = self._estimator.fieldTags
        return layout.getTagPose(tag_id) if layout is not None else None

    def _estimate(self, result: PhotonPipelineResult) -> Optional[EstimatedRobotPose]:
        estimate = self._estimator.estimateCoprocMultiTagPose(result)

        if estimate is None:
            estimate = self._estimator.estimateLowestAmbiguityPose(result)

        return estimate

    def get_estimated_global_pose(self) -> Optional[EstimatedRobotPose]:
        """
        The latest estimated robot pose on the field from vision data. This may be None. This
        should only be called once per loop.

        The standard deviations for the estimate are updated as well and can be retrieved
        with 'get_estimation_std_devs'.
        """
        self.pipeline = VisionPipeline.THREE_D_APRIL_TAG
        vision_estimate: Optional[EstimatedRobotPose] = None

        for result in self._camera.getAllUnreadResults():
            if not result.hasTargets():
                continue

            vision_estimate = self._estimate(result)

            estimate = None
            if vision_estimate is not None:
                estimate = PoseEstimate(vision_estimate.estimatedPose,
                                        vision_estimate.timestampSeconds,
                                        [TagObservation(t.fiducialId) for t in vision_estimate.targetsUsed])

            observations = [TagObservation(target.fiducialId) for target in result.getTargets()]
            self._std_devs.update(estimate, observations, self._tag_pose)

        self._last_estimate = vision_estimate
        return vision_estimate

    def get_estimation_std_devs(self) -> StdDevs:
        """
        Returns the latest standard deviations of the estimated pose from
        'get_estimated_global_pose', for use with the drivetrain's 'add_vision_measurement'.
        This should only be used when there are targets visible.
        """
        return self._std_devs.get_last()

    def get_latest_2d_result(self) -> Optional[PhotonPipelineResult]:
        """
        Fetch all unread results from the 2D pipeline and return the latest one, or
        None if there are no unread results.
        """
        self.pipeline = VisionPipeline.TWO_D_APRIL_TAG
        results: List[PhotonPipelineResult] = self._camera.getAllUnreadResults()

        return results[-1] if results else None

    def periodic(self) -> None:
        self._counter += 1

        connected = self.connected
        if connected != self._connected:
            logger.warning(f"Camera {self.name}: {'CONNECTED' if connected else 'DISCONNECTED'}")
            self._connected = connected

        self._disconnected_alert.set(not connected)

        estimate = self.get_estimated_global_pose()

        if estimate is not None and self._vision_input is not None:
            self._vision_input(estimate.estimatedPose.toPose2d(),
                               estimate.timestampSeconds,
                               self.get_estimation_std_devs())

        self.dashboard_periodic()

    def dashboard_initialize(self) -> None:
        """
        Configure the SmartDashboard for this subsystem
        """
        SmartDashboard.putString(f"Vision/{self.name}/type", "PhotonVision")

    def dashboard_periodic(self) -> None:
        """
        Called from periodic function to update dashboard elements for this subsystem
        """
        divisor = constants.DASHBOARD_ENABLED_DIVISOR if DriverStation.isEnabled() \
            else constants.DASHBOARD_DISABLED_DIVISOR

        if self._counter % divisor == 0:
            x, y, theta = self.get_estimation_std_devs()

            SmartDashboard.putBoolean(f"Vision/{self.name}/connected", self._connected)
            SmartDashboard.putNumberArray(f"Vision/{self.name}/std-devs", [x, y, theta])

            if self._last_estimate is not None:
                pose = self._last_estimate.estimatedPose.toPose2d()
                SmartDashboard.putNumberArray(f"Vision/{self.name}/pose",
                                              [pose.X(), pose.Y(), pose.rotation().degrees()])
