#!/usr/bin/env python3
"""
Unit tests for MoveGroupClient.

Tests goal construction, result handling and FK pose lookup with mocked
action/service clients, without requiring a running move_group.

Run: python3 -m pytest test/test_move_group_client.py -v
"""

from unittest.mock import MagicMock, Mock, patch

import pytest

pytest.importorskip('rclpy')
pytest.importorskip('moveit_msgs')

from geometry_msgs.msg import PoseStamped  # noqa: E402
from moveit_msgs.action import ExecuteTrajectory, MoveGroup  # noqa: E402
from moveit_msgs.msg import MoveItErrorCodes  # noqa: E402
from moveit_msgs.srv import GetPositionFK  # noqa: E402
from shape_msgs.msg import SolidPrimitive  # noqa: E402

from manipulation_gui.config import load_config  # noqa: E402
from manipulation_gui.move_group_client import MoveGroupClient, describe_error_code  # noqa: E402


ARM_JOINTS = ['joint1', 'joint2', 'joint3', 'joint4']


# =============================================================================
# Helpers
# =============================================================================

def done_future(value):
    """Future-like mock that is already complete."""
    future = Mock()
    future.done.return_value = True
    future.result.return_value = value
    return future


def accepted_goal_handle(result):
    goal_handle = Mock()
    goal_handle.accepted = True
    goal_handle.get_result_async.return_value = done_future(Mock(result=result))
    return goal_handle


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def mock_node():
    """Create a mock ROS2 node."""
    node = Mock()
    node.get_logger.return_value = Mock()
    node.create_client.side_effect = lambda *args, **kwargs: MagicMock()
    return node


@pytest.fixture
def joint_positions():
    return {'joint1': 0.1, 'joint2': 0.2, 'joint3': 0.3, 'joint4': 0.4, 'gripper': 0.01}


@pytest.fixture
def arm(mock_node, joint_positions):
    """Arm MoveGroupClient with patched action clients."""
    with patch('manipulation_gui.move_group_client.ActionClient') as mock_action_client:
        mock_action_client.side_effect = lambda *args, **kwargs: MagicMock()
        client = MoveGroupClient(
            mock_node,
            'arm',
            ARM_JOINTS,
            lambda: dict(joint_positions),
            load_config(None),
            end_effector_link='end_effector_link'
        )
    return client


# =============================================================================
# Tests
# =============================================================================

class TestCurrentState:
    """Current joint values come from the telemetry cache."""

    def test_values_in_group_order(self, arm):
        assert arm.get_current_joint_values() == [0.1, 0.2, 0.3, 0.4]

    def test_missing_joint_returns_none(self, arm, joint_positions):
        del joint_positions['joint3']
        assert arm.get_current_joint_values() is None


class TestGoalConstraints:
    """Targets become MoveIt goal constraints."""

    def test_no_target(self, arm):
        assert arm._build_goal_constraints() is None

    def test_joint_target(self, arm):
        arm.set_joint_value_target([0.0, -1.0, 0.3, 0.7])
        constraints = arm._build_goal_constraints()

        names = [jc.joint_name for jc in constraints.joint_constraints]
        positions = [jc.position for jc in constraints.joint_constraints]
        assert names == ARM_JOINTS
        assert positions == [0.0, -1.0, 0.3, 0.7]
        assert constraints.joint_constraints[0].tolerance_above == pytest.approx(0.0001)
        assert len(constraints.position_constraints) == 0

    def test_joint_target_wrong_length_raises(self, arm):
        with pytest.raises(ValueError):
            arm.set_joint_value_target([0.0, 1.0])

    def test_position_target_without_orientation(self, arm):
        arm.set_goal_tolerance(0.1)
        arm.set_position_target([0.2, 0.0, 0.15])
        constraints = arm._build_goal_constraints()

        assert len(constraints.position_constraints) == 1
        assert len(constraints.orientation_constraints) == 0
        assert len(constraints.joint_constraints) == 0

        pc = constraints.position_constraints[0]
        assert pc.link_name == 'end_effector_link'
        assert pc.header.frame_id == 'base_footprint'
        sphere = pc.constraint_region.primitives[0]
        assert sphere.type == SolidPrimitive.SPHERE
        assert list(sphere.dimensions) == pytest.approx([0.1])
        center = pc.constraint_region.primitive_poses[0].position
        assert (center.x, center.y, center.z) == pytest.approx((0.2, 0.0, 0.15))

    def test_new_target_replaces_previous(self, arm):
        arm.set_position_target([0.2, 0.0, 0.15])
        arm.set_joint_value_target([0.0, 0.0, 0.0, 0.0])
        constraints = arm._build_goal_constraints()
        assert len(constraints.position_constraints) == 0
        assert len(constraints.joint_constraints) == 4

    def test_goal_tolerance_is_sticky(self, arm):
        arm.set_goal_tolerance(0.05)
        arm.set_joint_value_target([0.0, 0.0, 0.0, 0.0])
        constraints = arm._build_goal_constraints()
        assert constraints.joint_constraints[0].tolerance_below == pytest.approx(0.05)


class TestPlan:
    """plan() sends a plan-only MoveGroup goal."""

    def test_plan_without_target_fails(self, arm):
        assert arm.plan() == (False, None)
        arm._move_group_client.send_goal_async.assert_not_called()

    def test_plan_success_returns_trajectory(self, arm):
        result = MoveGroup.Result()
        result.error_code.val = MoveItErrorCodes.SUCCESS
        arm._move_group_client.server_is_ready.return_value = True
        arm._move_group_client.send_goal_async.return_value = done_future(
            accepted_goal_handle(result)
        )

        arm.set_joint_value_target([0.0, -1.0, 0.3, 0.7])
        success, trajectory = arm.plan()

        assert success is True
        assert trajectory is result.planned_trajectory

        goal = arm._move_group_client.send_goal_async.call_args[0][0]
        assert goal.planning_options.plan_only is True
        assert goal.request.group_name == 'arm'
        assert goal.request.allowed_planning_time == pytest.approx(5.0)

    def test_plan_error_code_fails(self, arm):
        result = MoveGroup.Result()
        result.error_code.val = MoveItErrorCodes.PLANNING_FAILED
        arm._move_group_client.server_is_ready.return_value = True
        arm._move_group_client.send_goal_async.return_value = done_future(
            accepted_goal_handle(result)
        )

        arm.set_joint_value_target([0.0, -1.0, 0.3, 0.7])
        assert arm.plan() == (False, None)

    def test_plan_goal_rejected(self, arm):
        goal_handle = Mock()
        goal_handle.accepted = False
        arm._move_group_client.server_is_ready.return_value = True
        arm._move_group_client.send_goal_async.return_value = done_future(goal_handle)

        arm.set_joint_value_target([0.0, -1.0, 0.3, 0.7])
        assert arm.plan() == (False, None)
        arm.logger.error.assert_called()

    def test_plan_server_unavailable(self, arm):
        arm._move_group_client.server_is_ready.return_value = False
        arm.set_joint_value_target([0.0, -1.0, 0.3, 0.7])

        assert arm.plan() == (False, None)
        arm._move_group_client.send_goal_async.assert_not_called()


class TestExecute:
    """execute() sends the planned trajectory to ExecuteTrajectory."""

    def test_execute_none_fails(self, arm):
        assert arm.execute(None) is False

    def test_execute_success(self, arm):
        result = ExecuteTrajectory.Result()
        result.error_code.val = MoveItErrorCodes.SUCCESS
        arm._execute_client.server_is_ready.return_value = True
        arm._execute_client.send_goal_async.return_value = done_future(
            accepted_goal_handle(result)
        )
        trajectory = MoveGroup.Result().planned_trajectory

        assert arm.execute(trajectory) is True
        goal = arm._execute_client.send_goal_async.call_args[0][0]
        assert goal.trajectory is trajectory

    def test_execute_control_failed(self, arm):
        result = ExecuteTrajectory.Result()
        result.error_code.val = MoveItErrorCodes.CONTROL_FAILED
        arm._execute_client.server_is_ready.return_value = True
        arm._execute_client.send_goal_async.return_value = done_future(
            accepted_goal_handle(result)
        )

        assert arm.execute(MoveGroup.Result().planned_trajectory) is False


class TestCurrentPose:
    """get_current_pose() queries /compute_fk with the cached joint state."""

    def test_pose_from_fk(self, arm):
        response = GetPositionFK.Response()
        response.error_code.val = MoveItErrorCodes.SUCCESS
        pose_stamped = PoseStamped()
        pose_stamped.pose.position.x = 0.28
        pose_stamped.pose.position.z = 0.19
        response.pose_stamped = [pose_stamped]

        arm._fk_client.service_is_ready.return_value = True
        arm._fk_client.call_async.return_value = done_future(response)

        pose = arm.get_current_pose()

        assert pose.position.x == pytest.approx(0.28)
        assert pose.position.z == pytest.approx(0.19)
        request = arm._fk_client.call_async.call_args[0][0]
        assert list(request.fk_link_names) == ['end_effector_link']
        assert 'joint1' in request.robot_state.joint_state.name

    def test_fk_not_ready_returns_none(self, arm):
        arm._fk_client.service_is_ready.return_value = False
        assert arm.get_current_pose() is None
        arm._fk_client.call_async.assert_not_called()

    def test_fk_error_returns_none(self, arm):
        response = GetPositionFK.Response()
        response.error_code.val = MoveItErrorCodes.FAILURE
        arm._fk_client.service_is_ready.return_value = True
        arm._fk_client.call_async.return_value = done_future(response)

        assert arm.get_current_pose() is None


class TestDescribeErrorCode:

    def test_known_codes(self):
        assert describe_error_code(MoveItErrorCodes.SUCCESS) == 'SUCCESS'
        assert describe_error_code(MoveItErrorCodes.PLANNING_FAILED) == 'PLANNING_FAILED'

    def test_unknown_code(self):
        assert describe_error_code(12345) == 'UNKNOWN (12345)'
