"""Joint-state telemetry listener feeding the GUI state cache."""

try:
    import rclpy.logging
    ROS_LOGGING_AVAILABLE = True
except ImportError:
    ROS_LOGGING_AVAILABLE = False

from .state_cache import StateCache


class TelemetryListener:
    """Updates a StateCache from joint-state messages.

    Each message also triggers one blocking end-effector pose query on the
    pose source (the arm planning group), which stalls message processing
    until the planning library answers.
    """

    def __init__(self, cache: StateCache, pose_source, logger=None):
        """Initialize with the cache to write and the arm pose source.

        Args:
            cache: StateCache receiving joint angles and end-effector position
            pose_source: Object exposing get_current_pose() -> Pose or None
            logger: Optional logger, defaults to the rclpy logger when available
        """
        self._cache = cache
        self._pose_source = pose_source

        if logger is not None:
            self._logger = logger
        elif ROS_LOGGING_AVAILABLE:
            self._logger = rclpy.logging.get_logger('manipulation_gui.telemetry')
        else:
            self._logger = None

        self._message_count = 0

    @property
    def message_count(self) -> int:
        return self._message_count

    def joint_states_callback(self, msg) -> None:
        """Handle a joint-state message with parallel name/position arrays."""
        self._message_count += 1
        self._cache.update_joint_angles(list(msg.name), list(msg.position))

        pose = self._pose_source.get_current_pose()
        if pose is None:
            if self._logger:
                self._logger.debug('End-effector pose unavailable, keeping last position')
            return

        self._cache.update_kinematics_position(
            pose.position.x,
            pose.position.y,
            pose.position.z
        )
