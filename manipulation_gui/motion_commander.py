"""
Motion Commander

Dispatches GUI motion requests to MoveIt planning groups:
- Joint space path (4 arm joints)
- Task space path (end-effector x, y, z; orientation unconstrained)
- Tool control (gripper)

Every command follows the same sequence: read current state, overwrite the
target, plan, and execute only if planning succeeded. The boolean result
reports planning success.

Planning groups are duck-typed and must provide:
    get_current_joint_values() -> list or None
    set_joint_value_target(values)
    set_position_target(xyz)
    set_goal_tolerance(tolerance)
    plan() -> (success, plan)
    execute(plan) -> bool
"""

import threading
from typing import List, Optional, Sequence

try:
    import rclpy.logging
    ROS_LOGGING_AVAILABLE = True
except ImportError:
    ROS_LOGGING_AVAILABLE = False


NUM_OF_ARM_JOINT = 4
NUM_OF_POSITION = 3
NUM_OF_TOOL_JOINT = 1

DEFAULT_GOAL_TOLERANCE = 0.1


class MotionCommander:
    """Plan-then-execute wrapper around the arm and gripper planning groups."""

    def __init__(
        self,
        arm_group,
        gripper_group,
        goal_tolerance: float = DEFAULT_GOAL_TOLERANCE,
        logger=None
    ):
        """
        Initialize MotionCommander.

        Args:
            arm_group: Planning group for the 4-DOF arm
            gripper_group: Planning group for the gripper
            goal_tolerance: Goal tolerance applied before task space planning
            logger: Optional logger, defaults to the rclpy logger when available
        """
        self.arm_group = arm_group
        self.gripper_group = gripper_group
        self.goal_tolerance = goal_tolerance

        if logger is not None:
            self._logger = logger
        elif ROS_LOGGING_AVAILABLE:
            self._logger = rclpy.logging.get_logger('manipulation_gui.motion_commander')
        else:
            self._logger = None

        # Serializes target overwrites on the shared planning groups
        self._lock = threading.Lock()

    def _log_debug(self, msg: str) -> None:
        if self._logger:
            self._logger.debug(msg)

    def _log_info(self, msg: str) -> None:
        if self._logger:
            self._logger.info(msg)

    def _log_warn(self, msg: str) -> None:
        if self._logger:
            self._logger.warning(msg)

    def set_joint_space_path(self, joint_angle: Sequence[float], path_time: float) -> bool:
        """
        Plan and execute a joint space motion of the arm.

        Args:
            joint_angle: Target angles for joint1..joint4 in radians
            path_time: Requested motion duration (not used by MoveIt planning)

        Returns:
            True if planning succeeded and the plan was executed
        """
        if len(joint_angle) < NUM_OF_ARM_JOINT:
            self._log_warn(
                f'Joint space path needs {NUM_OF_ARM_JOINT} angles, got {len(joint_angle)}'
            )
            return False

        self._log_debug(f'Joint space path_time={path_time} ignored by planner')

        with self._lock:
            joint_group_positions = self._current_positions(self.arm_group, 'arm')
            if joint_group_positions is None:
                return False
            if len(joint_group_positions) < NUM_OF_ARM_JOINT:
                self._log_warn(
                    f'Arm group reports {len(joint_group_positions)} joints, '
                    f'expected at least {NUM_OF_ARM_JOINT}'
                )
                return False

            for i in range(NUM_OF_ARM_JOINT):
                joint_group_positions[i] = float(joint_angle[i])  # radians
            self.arm_group.set_joint_value_target(joint_group_positions)

            return self._plan_and_execute(self.arm_group, 'arm')

    def set_task_space_path(self, kinematics_pose: Sequence[float], path_time: float) -> bool:
        """
        Plan and execute a motion of the end-effector to a Cartesian position.

        Orientation is left unconstrained.

        Args:
            kinematics_pose: Target x, y, z in meters
            path_time: Requested motion duration (not used by MoveIt planning)

        Returns:
            True if planning succeeded and the plan was executed
        """
        if len(kinematics_pose) < NUM_OF_POSITION:
            self._log_warn(
                f'Task space path needs {NUM_OF_POSITION} coordinates, got {len(kinematics_pose)}'
            )
            return False

        self._log_debug(f'Task space path_time={path_time} ignored by planner')

        with self._lock:
            self.arm_group.set_goal_tolerance(self.goal_tolerance)

            target = [float(kinematics_pose[i]) for i in range(NUM_OF_POSITION)]
            self.arm_group.set_position_target(target)

            return self._plan_and_execute(self.arm_group, 'arm')

    def set_tool_control(self, joint_angle: Sequence[float]) -> bool:
        """
        Plan and execute a gripper motion.

        Args:
            joint_angle: Sequence whose first element is the gripper target

        Returns:
            True if planning succeeded and the plan was executed
        """
        if len(joint_angle) < NUM_OF_TOOL_JOINT:
            self._log_warn('Tool control needs a gripper target, got none')
            return False

        with self._lock:
            joint_group_positions = self._current_positions(self.gripper_group, 'gripper')
            if joint_group_positions is None:
                return False
            if not joint_group_positions:
                self._log_warn('Gripper group reports no joints')
                return False

            joint_group_positions[0] = float(joint_angle[0])
            self.gripper_group.set_joint_value_target(joint_group_positions)

            return self._plan_and_execute(self.gripper_group, 'gripper')

    def _current_positions(self, group, label: str) -> Optional[List[float]]:
        positions = group.get_current_joint_values()
        if positions is None:
            self._log_warn(f'No current joint state for {label} group')
            return None
        return list(positions)

    def _plan_and_execute(self, group, label: str) -> bool:
        """Plan on the group and execute the plan only on success."""
        success, plan = group.plan()
        if not success:
            self._log_warn(f'Planning failed for {label} group')
            return False

        if not group.execute(plan):
            # Reported but not propagated: the command result is planning success
            self._log_warn(f'Execution did not complete for {label} group')
        else:
            self._log_info(f'Executed {label} plan')

        return True
