#!/usr/bin/env python3
"""
MoveGroup Client

Planning group adapter over the MoveIt 2 move_group interfaces:
- /move_action (MoveGroup action, plan only) for planning
- /execute_trajectory (ExecuteTrajectory action) for execution
- /compute_fk (GetPositionFK service) for the current end-effector pose

NOT a ROS2 node - requires parent node reference for action and service
clients. The parent node must be spun by an executor on another thread
(see ManipulationGuiNode.run) because every call here blocks until the
move_group answers.
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from rclpy.node import Node
from rclpy.action import ActionClient
from rclpy.callback_groups import ReentrantCallbackGroup
from geometry_msgs.msg import Pose
from moveit_msgs.action import MoveGroup, ExecuteTrajectory
from moveit_msgs.msg import (
    BoundingVolume,
    Constraints,
    JointConstraint,
    MotionPlanRequest,
    MoveItErrorCodes,
    PlanningOptions,
    PositionConstraint,
    RobotState,
)
from moveit_msgs.srv import GetPositionFK
from shape_msgs.msg import SolidPrimitive


def describe_error_code(code: int) -> str:
    """Return the MoveItErrorCodes constant name for a code value."""
    # Message constants live on the generated metaclass
    names = set(dir(MoveItErrorCodes)) | set(dir(type(MoveItErrorCodes)))
    for name in sorted(names):
        if name.startswith('_') or not name.isupper():
            continue
        value = getattr(MoveItErrorCodes, name, None)
        if isinstance(value, int) and value == code:
            return name
    return f'UNKNOWN ({code})'


class MoveGroupClient:
    """
    One MoveIt planning group (e.g. 'arm' or 'gripper').

    Mirrors the subset of the MoveGroupCommander API used by the GUI:
    targets are set first, then plan() produces a trajectory and
    execute() runs it. Goal tolerances are sticky, as in MoveGroupInterface.

    Usage:
        arm = MoveGroupClient(node, 'arm', ['joint1', 'joint2', 'joint3', 'joint4'],
                              cache.get_joint_positions, config,
                              end_effector_link='end_effector_link')
        arm.set_joint_value_target([0.0, -1.0, 0.3, 0.7])
        success, trajectory = arm.plan()
        if success:
            arm.execute(trajectory)
    """

    def __init__(
        self,
        node: Node,
        group_name: str,
        joint_names: Sequence[str],
        joint_state_source: Callable[[], Dict[str, float]],
        config: Dict[str, Any],
        end_effector_link: Optional[str] = None,
        callback_group=None
    ):
        """
        Initialize MoveGroupClient with reference to parent ROS2 node.

        Args:
            node: ROS2 node instance for creating action and service clients
            group_name: MoveIt planning group name (from SRDF)
            joint_names: Joints of the group, in planning group order
            joint_state_source: Callable returning the latest joint name -> position map
            config: Loaded GUI config (see manipulation_gui.config)
            end_effector_link: Link used for position targets and FK
            callback_group: Callback group for clients (default: new ReentrantCallbackGroup)
        """
        self.node = node
        self.logger = node.get_logger()
        self.group_name = group_name
        self.joint_names: List[str] = list(joint_names)
        self.end_effector_link = end_effector_link or ''
        self._joint_state_source = joint_state_source

        self.planning_frame = config['planning_frame']
        planning = config['planning']
        self.planning_time = float(planning['planning_time'])
        self.num_planning_attempts = int(planning['num_planning_attempts'])
        self.max_velocity_scaling_factor = float(planning['max_velocity_scaling_factor'])
        self.max_acceleration_scaling_factor = float(planning['max_acceleration_scaling_factor'])
        self.goal_joint_tolerance = float(planning['goal_joint_tolerance'])
        self.goal_position_tolerance = float(planning['goal_position_tolerance'])

        timeouts = config['timeouts']
        self.fk_timeout_sec = float(timeouts['fk_timeout_sec'])
        self.plan_timeout_margin_sec = float(timeouts['plan_timeout_margin_sec'])
        self.execute_timeout_sec = float(timeouts['execute_timeout_sec'])

        interfaces = config['interfaces']
        self._move_group_action = interfaces['move_group_action']
        self._execute_action = interfaces['execute_trajectory_action']
        self._fk_service = interfaces['compute_fk_service']

        # Reentrant so responses are processed while another callback blocks
        self._callback_group = callback_group or ReentrantCallbackGroup()

        self._move_group_client = ActionClient(
            node,
            MoveGroup,
            self._move_group_action,
            callback_group=self._callback_group
        )
        self._execute_client = ActionClient(
            node,
            ExecuteTrajectory,
            self._execute_action,
            callback_group=self._callback_group
        )
        self._fk_client = node.create_client(
            GetPositionFK,
            self._fk_service,
            callback_group=self._callback_group
        )

        # Active target: exactly one of these is set at a time
        self._joint_target: Optional[List[float]] = None
        self._position_target: Optional[List[float]] = None

        self.logger.info(
            f"MoveGroupClient initialized for group '{group_name}' "
            f'({len(self.joint_names)} joints, frame: {self.planning_frame})'
        )

    def wait_for_servers(self, timeout_sec: float = 5.0) -> bool:
        """
        Wait for the move_group action servers and FK service.

        Args:
            timeout_sec: Maximum time to wait for each interface

        Returns:
            True if all interfaces are available, False if any timed out
        """
        all_ready = True

        for name, client in (
            (self._move_group_action, self._move_group_client),
            (self._execute_action, self._execute_client),
        ):
            self.logger.info(f'Waiting for action server: {name}')
            if not client.wait_for_server(timeout_sec=timeout_sec):
                self.logger.error(f'Action server not available: {name}')
                all_ready = False

        self.logger.info(f'Waiting for service: {self._fk_service}')
        if not self._fk_client.wait_for_service(timeout_sec=timeout_sec):
            self.logger.error(f'Service not available: {self._fk_service}')
            all_ready = False

        if all_ready:
            self.logger.info(f"MoveIt interfaces ready for group '{self.group_name}'")
        return all_ready

    # =========================================================================
    # State
    # =========================================================================

    def get_current_joint_values(self) -> Optional[List[float]]:
        """
        Current group joint positions from the telemetry cache.

        Returns:
            Positions in group joint order, or None if any joint is unknown
        """
        positions = self._joint_state_source()
        missing = [name for name in self.joint_names if name not in positions]
        if missing:
            self.logger.debug(f'No joint state yet for {missing}')
            return None
        return [positions[name] for name in self.joint_names]

    def get_current_pose(self) -> Optional[Pose]:
        """
        End-effector pose computed by MoveIt FK from the cached joint state.

        Blocks until /compute_fk answers or fk_timeout_sec elapses.

        Returns:
            Pose in planning_frame, or None if unavailable
        """
        if not self.end_effector_link:
            return None

        if not self._fk_client.service_is_ready():
            self.logger.debug(f'{self._fk_service} not ready')
            return None

        request = GetPositionFK.Request()
        request.header.frame_id = self.planning_frame
        request.fk_link_names = [self.end_effector_link]
        request.robot_state = self._build_robot_state()

        future = self._fk_client.call_async(request)
        if not self._wait_for_future(future, self.fk_timeout_sec):
            self.logger.debug(f'{self._fk_service} timed out')
            return None

        response = future.result()
        if response is None:
            return None
        if response.error_code.val != MoveItErrorCodes.SUCCESS or not response.pose_stamped:
            self.logger.debug(
                f'FK failed: {describe_error_code(response.error_code.val)}'
            )
            return None

        return response.pose_stamped[0].pose

    # =========================================================================
    # Targets
    # =========================================================================

    def set_joint_value_target(self, values: Sequence[float]) -> None:
        """Set a joint space target for all group joints (group joint order)."""
        if len(values) != len(self.joint_names):
            raise ValueError(
                f"Group '{self.group_name}' has {len(self.joint_names)} joints, "
                f'got {len(values)} values'
            )
        self._joint_target = [float(v) for v in values]
        self._position_target = None

    def set_position_target(self, xyz: Sequence[float]) -> None:
        """Set an end-effector position target; orientation stays free."""
        if len(xyz) != 3:
            raise ValueError(f'Position target needs 3 values, got {len(xyz)}')
        self._position_target = [float(v) for v in xyz]
        self._joint_target = None

    def set_goal_tolerance(self, tolerance: float) -> None:
        """Set joint and position goal tolerance for subsequent plans."""
        self.goal_joint_tolerance = float(tolerance)
        self.goal_position_tolerance = float(tolerance)

    # =========================================================================
    # Plan / execute
    # =========================================================================

    def _build_robot_state(self) -> RobotState:
        state = RobotState()
        positions = self._joint_state_source()
        state.joint_state.name = list(positions.keys())
        state.joint_state.position = [float(p) for p in positions.values()]
        state.is_diff = True
        return state

    def _build_goal_constraints(self) -> Optional[Constraints]:
        """Goal constraints for the active target, or None if no target is set."""
        constraints = Constraints()

        if self._joint_target is not None:
            for joint_name, position in zip(self.joint_names, self._joint_target):
                jc = JointConstraint()
                jc.joint_name = joint_name
                jc.position = position
                jc.tolerance_above = self.goal_joint_tolerance
                jc.tolerance_below = self.goal_joint_tolerance
                jc.weight = 1.0
                constraints.joint_constraints.append(jc)
            return constraints

        if self._position_target is not None:
            sphere = SolidPrimitive()
            sphere.type = SolidPrimitive.SPHERE
            sphere.dimensions = [self.goal_position_tolerance]

            region_pose = Pose()
            region_pose.position.x = self._position_target[0]
            region_pose.position.y = self._position_target[1]
            region_pose.position.z = self._position_target[2]
            region_pose.orientation.w = 1.0

            region = BoundingVolume()
            region.primitives = [sphere]
            region.primitive_poses = [region_pose]

            pc = PositionConstraint()
            pc.header.frame_id = self.planning_frame
            pc.link_name = self.end_effector_link
            pc.constraint_region = region
            pc.weight = 1.0
            constraints.position_constraints.append(pc)
            return constraints

        return None

    def _build_plan_goal(self, constraints: Constraints) -> MoveGroup.Goal:
        req = MotionPlanRequest()
        req.group_name = self.group_name
        req.num_planning_attempts = self.num_planning_attempts
        req.allowed_planning_time = self.planning_time
        req.max_velocity_scaling_factor = self.max_velocity_scaling_factor
        req.max_acceleration_scaling_factor = self.max_acceleration_scaling_factor
        req.workspace_parameters.header.frame_id = self.planning_frame
        req.goal_constraints = [constraints]

        # Empty diff: plan from the move_group's current monitored state
        req.start_state.is_diff = True

        goal = MoveGroup.Goal()
        goal.request = req
        goal.planning_options = PlanningOptions()
        goal.planning_options.plan_only = True
        goal.planning_options.planning_scene_diff.is_diff = True
        goal.planning_options.planning_scene_diff.robot_state.is_diff = True
        return goal

    def plan(self) -> Tuple[bool, Any]:
        """
        Plan from the current state to the active target.

        Returns:
            Tuple (success, RobotTrajectory or None)
        """
        constraints = self._build_goal_constraints()
        if constraints is None:
            self.logger.warning(f"No target set for group '{self.group_name}'")
            return (False, None)

        if not self._move_group_client.server_is_ready():
            self.logger.error(f'Action server not available: {self._move_group_action}')
            return (False, None)

        goal = self._build_plan_goal(constraints)
        timeout = self.planning_time + self.plan_timeout_margin_sec

        result = self._send_goal_and_wait(self._move_group_client, goal, timeout, 'Planning')
        if result is None:
            return (False, None)

        if result.error_code.val != MoveItErrorCodes.SUCCESS:
            self.logger.warning(
                f"Planning failed for '{self.group_name}': "
                f'{describe_error_code(result.error_code.val)}'
            )
            return (False, None)

        points = len(result.planned_trajectory.joint_trajectory.points)
        self.logger.info(f"Planning succeeded for '{self.group_name}' ({points} waypoints)")
        return (True, result.planned_trajectory)

    def execute(self, trajectory) -> bool:
        """
        Execute a planned trajectory through move_group.

        Args:
            trajectory: moveit_msgs/RobotTrajectory returned by plan()

        Returns:
            True if move_group reports successful execution
        """
        if trajectory is None:
            return False

        if not self._execute_client.server_is_ready():
            self.logger.error(f'Action server not available: {self._execute_action}')
            return False

        goal = ExecuteTrajectory.Goal()
        goal.trajectory = trajectory

        timeout = self.execute_timeout_sec if self.execute_timeout_sec > 0 else None
        result = self._send_goal_and_wait(self._execute_client, goal, timeout, 'Execution')
        if result is None:
            return False

        if result.error_code.val != MoveItErrorCodes.SUCCESS:
            self.logger.warning(
                f"Execution failed for '{self.group_name}': "
                f'{describe_error_code(result.error_code.val)}'
            )
            return False
        return True

    def _send_goal_and_wait(self, client: ActionClient, goal, timeout_sec, label: str):
        """Send an action goal and block for its result (None on failure)."""
        send_goal_future = client.send_goal_async(goal)
        if not self._wait_for_future(send_goal_future, timeout_sec):
            self.logger.error(f'{label} goal send timeout for {self.group_name}')
            return None

        goal_handle = send_goal_future.result()
        if goal_handle is None or not goal_handle.accepted:
            self.logger.error(f'{label} goal rejected for {self.group_name}')
            return None

        result_future = goal_handle.get_result_async()
        if not self._wait_for_future(result_future, timeout_sec):
            self.logger.error(f'{label} timeout after {timeout_sec}s for {self.group_name}')
            return None

        wrapped = result_future.result()
        if wrapped is None:
            return None
        return wrapped.result

    @staticmethod
    def _wait_for_future(future, timeout_sec: Optional[float]) -> bool:
        """Block until the future is done; timeout_sec None waits forever."""
        if future.done():
            return True
        event = threading.Event()
        future.add_done_callback(lambda _: event.set())
        event.wait(timeout_sec)
        return future.done()
