#!/usr/bin/env python3
"""
Manipulation GUI Node

Backend node for the manipulation GUI. Caches joint-state telemetry and
end-effector position for display, and forwards joint space, task space and
gripper goals to MoveIt.

- Subscribes to joint_states, one FK pose query per message
- Plans through /move_action (plan only), executes through /execute_trajectory
- Run loop polls the executor at loop_rate (10 Hz default)
- Shutdown callbacks fire when the ROS context goes down (GUI should close)

Config loaded from config/gui_params.yaml (parameter: config_file).
"""

import threading
import time
from typing import Callable, List, Optional, Sequence

import rclpy
from rclpy.node import Node
from rclpy.callback_groups import MutuallyExclusiveCallbackGroup, ReentrantCallbackGroup
from rclpy.executors import MultiThreadedExecutor
from sensor_msgs.msg import JointState
from ament_index_python.packages import PackageNotFoundError

from manipulation_gui.config import default_config_file, load_config
from manipulation_gui.motion_commander import MotionCommander
from manipulation_gui.move_group_client import MoveGroupClient
from manipulation_gui.state_cache import StateCache
from manipulation_gui.telemetry import TelemetryListener


# Telemetry worker plus at least one thread free for MoveIt responses
EXECUTOR_THREADS = 2


class ManipulationGuiNode(Node):
    """
    GUI-facing node: state getters plus three blocking motion commands.

    Usage (from a GUI):
        rclpy.init()
        node = ManipulationGuiNode()
        node.add_shutdown_callback(window.close)
        if not node.init():
            ...  # MoveIt not reachable
        node.set_joint_space_path([0.0, -1.0, 0.3, 0.7], 2.0)
    """

    def __init__(self, node_name: str = 'manipulation_gui'):
        super().__init__(node_name)

        self.declare_parameter('config_file', self._default_config_file())
        config_file = self.get_parameter('config_file').get_parameter_value().string_value
        self.config = load_config(config_file, self.get_logger())

        arm_config = self.config['arm']
        gripper_config = self.config['gripper']

        # Snapshot order: arm joints then gripper joints
        self.cache = StateCache(
            list(arm_config['joint_names']) + list(gripper_config['joint_names'])
        )

        # MoveIt responses must be delivered while a command or FK query blocks
        self._moveit_callback_group = ReentrantCallbackGroup()
        # joint_states callbacks run one at a time, in arrival order
        self._telemetry_callback_group = MutuallyExclusiveCallbackGroup()

        self.arm_group = MoveGroupClient(
            self,
            arm_config['group_name'],
            arm_config['joint_names'],
            self.cache.get_joint_positions,
            self.config,
            end_effector_link=arm_config.get('end_effector_link'),
            callback_group=self._moveit_callback_group
        )
        self.gripper_group = MoveGroupClient(
            self,
            gripper_config['group_name'],
            gripper_config['joint_names'],
            self.cache.get_joint_positions,
            self.config,
            end_effector_link=gripper_config.get('end_effector_link'),
            callback_group=self._moveit_callback_group
        )

        self.telemetry = TelemetryListener(self.cache, self.arm_group, self.get_logger())
        self._joint_states_sub = self.create_subscription(
            JointState,
            self.config['joint_states_topic'],
            self.telemetry.joint_states_callback,
            10,
            callback_group=self._telemetry_callback_group
        )

        self.commander = MotionCommander(
            self.arm_group,
            self.gripper_group,
            goal_tolerance=float(self.config['goal_tolerance']),
            logger=self.get_logger()
        )

        self._executor: Optional[MultiThreadedExecutor] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._shutdown_callbacks: List[Callable[[], None]] = []

        self.get_logger().info(
            f"Manipulation GUI node ready (topic: {self.config['joint_states_topic']}, "
            f"loop_rate: {self.config['loop_rate']}Hz)"
        )

    def _default_config_file(self) -> str:
        try:
            return default_config_file()
        except (PackageNotFoundError, EnvironmentError):
            self.get_logger().warning('manipulation_gui share directory not found, using defaults')
            return ''

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def connect(self, timeout_sec: Optional[float] = None) -> bool:
        """Check that MoveIt's move_group interfaces are reachable."""
        if timeout_sec is None:
            timeout_sec = float(self.config['timeouts']['server_timeout_sec'])
        return self.arm_group.wait_for_servers(timeout_sec=timeout_sec)

    def init(self, timeout_sec: Optional[float] = None) -> bool:
        """
        Connect to MoveIt and start the run loop on a background thread.

        Returns:
            False if MoveIt is not reachable, True once the loop is running
        """
        if not self.connect(timeout_sec):
            return False
        self.start()
        return True

    def start(self) -> None:
        """Start the run loop on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name='manipulation_gui_spin', daemon=True)
        self._thread.start()

    def run(self) -> None:
        """Poll the executor at loop_rate until ROS shuts down or stop is requested."""
        if self._executor is None:
            self._executor = MultiThreadedExecutor(num_threads=EXECUTOR_THREADS)
            self._executor.add_node(self)

        period = 1.0 / float(self.config['loop_rate'])
        while rclpy.ok() and not self._stop_event.is_set():
            self._executor.spin_once(timeout_sec=period)

        self.get_logger().info('ROS shutdown, proceeding to close the gui.')
        for callback in list(self._shutdown_callbacks):
            callback()

    def shutdown(self, timeout_sec: float = 2.0) -> None:
        """Stop the run loop and release the executor."""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout_sec)
        self._thread = None
        if self._executor is not None:
            self._executor.shutdown()
            self._executor = None

    def add_shutdown_callback(self, callback: Callable[[], None]) -> None:
        """Register a callable invoked when the run loop exits."""
        self._shutdown_callbacks.append(callback)

    def wait_for_joint_state(self, timeout_sec: float = 5.0) -> bool:
        """Block until the first telemetry message has been cached."""
        deadline = time.monotonic() + timeout_sec
        while not self.cache.has_joint_state():
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.05)
        return True

    # =========================================================================
    # GUI interface
    # =========================================================================

    def get_present_joint_angle(self) -> List[float]:
        return self.cache.get_present_joint_angle()

    def get_present_kinematics_position(self) -> List[float]:
        return self.cache.get_present_kinematics_position()

    def set_joint_space_path(self, joint_angle: Sequence[float], path_time: float) -> bool:
        return self.commander.set_joint_space_path(joint_angle, path_time)

    def set_task_space_path(self, kinematics_pose: Sequence[float], path_time: float) -> bool:
        return self.commander.set_task_space_path(kinematics_pose, path_time)

    def set_tool_control(self, joint_angle: Sequence[float]) -> bool:
        return self.commander.set_tool_control(joint_angle)


def main(args=None):
    rclpy.init(args=args)
    node = ManipulationGuiNode()

    if not node.connect():
        node.get_logger().error('MoveIt move_group not available, is it running?')
        node.destroy_node()
        rclpy.shutdown()
        return

    try:
        node.run()
    except KeyboardInterrupt:
        node.get_logger().info('Shutting down manipulation GUI node')
    finally:
        node.shutdown()
        node.destroy_node()
        if rclpy.ok():
            rclpy.shutdown()


if __name__ == '__main__':
    main()
