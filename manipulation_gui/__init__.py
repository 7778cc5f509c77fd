"""
manipulation_gui - ROS2 backend for the manipulator GUI.

Modules:
    state_cache: Latest joint angle and end-effector position snapshots.
    telemetry: joint_states listener feeding the state cache.
    motion_commander: Joint space, task space and gripper plan-then-execute commands.
    move_group_client: MoveIt 2 move_group adapter (requires rclpy and moveit_msgs).
    gui_node: ManipulationGuiNode, the node the GUI talks to.
    config: gui_params.yaml loading.
"""

from manipulation_gui.motion_commander import MotionCommander
from manipulation_gui.state_cache import StateCache
from manipulation_gui.telemetry import TelemetryListener

__all__ = ['MotionCommander', 'StateCache', 'TelemetryListener']
