#!/usr/bin/env python3
"""
Manipulation GUI Command Tool

Sends the same commands as the GUI buttons from a terminal.

Usage:
    ros2 run manipulation_gui manipulation_gui_command state
    ros2 run manipulation_gui manipulation_gui_command joint 0.0 -1.0 0.3 0.7 --path-time 2.0
    ros2 run manipulation_gui manipulation_gui_command task 0.2 0.0 0.2
    ros2 run manipulation_gui manipulation_gui_command gripper 0.01

Prerequisites:
    - move_group running (MoveIt launch for the manipulator)
    - joint_states being published by the robot driver
"""

import argparse
import sys

import rclpy

from manipulation_gui.gui_node import ManipulationGuiNode


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='manipulation_gui_command',
        description='Send manipulation GUI commands to MoveIt'
    )
    parser.add_argument(
        '--timeout', type=float, default=5.0,
        help='Seconds to wait for MoveIt and the first joint state (default: 5.0)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('state', help='Print present joint angles and end-effector position')

    joint = subparsers.add_parser('joint', help='Joint space move of joint1..joint4 (rad)')
    joint.add_argument('angles', type=float, nargs=4, metavar='ANGLE')
    joint.add_argument('--path-time', type=float, default=2.0)

    task = subparsers.add_parser('task', help='Task space move of the end-effector (m)')
    task.add_argument('position', type=float, nargs=3, metavar=('X', 'Y', 'Z'))
    task.add_argument('--path-time', type=float, default=2.0)

    gripper = subparsers.add_parser('gripper', help='Move the gripper joint')
    gripper.add_argument('value', type=float)

    return parser


def run_command(node: ManipulationGuiNode, args: argparse.Namespace) -> bool:
    """Dispatch a parsed command to the node. Returns True on success."""
    if args.command == 'state':
        angles = node.get_present_joint_angle()
        position = node.get_present_kinematics_position()
        names = node.cache.joint_names
        print('Joint angles:')
        for name, angle in zip(names, angles):
            print(f'  {name}: {angle:.4f}')
        print(f'End-effector position: x={position[0]:.4f} y={position[1]:.4f} z={position[2]:.4f}')
        return True

    if args.command == 'joint':
        return node.set_joint_space_path(args.angles, args.path_time)

    if args.command == 'task':
        return node.set_task_space_path(args.position, args.path_time)

    if args.command == 'gripper':
        return node.set_tool_control([args.value])

    return False


def main(argv=None):
    args = build_parser().parse_args(argv)

    rclpy.init()
    node = ManipulationGuiNode('manipulation_gui_command')

    success = False
    try:
        if not node.init(timeout_sec=args.timeout):
            print('FATAL: MoveIt move_group not available', file=sys.stderr)
        elif not node.wait_for_joint_state(timeout_sec=args.timeout):
            print('FATAL: no joint_states received', file=sys.stderr)
        else:
            success = run_command(node, args)
            print('SUCCESS' if success else 'FAILED')
    except KeyboardInterrupt:
        pass
    finally:
        node.shutdown()
        node.destroy_node()
        if rclpy.ok():
            rclpy.shutdown()

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
