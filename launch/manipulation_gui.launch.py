"""
Launch file for the Manipulation GUI Node

Starts ManipulationGuiNode with config/gui_params.yaml from the package
share directory. MoveIt's move_group must be launched separately.

Usage:
    ros2 launch manipulation_gui manipulation_gui.launch.py
    ros2 launch manipulation_gui manipulation_gui.launch.py config_file:=/path/to/gui_params.yaml
"""

from launch import LaunchDescription
from launch.actions import DeclareLaunchArgument
from launch.substitutions import LaunchConfiguration
from launch_ros.actions import Node
from ament_index_python.packages import get_package_share_directory
import os


def generate_launch_description():
    """Generate launch description for the manipulation GUI node."""

    pkg_share = get_package_share_directory('manipulation_gui')
    default_config = os.path.join(pkg_share, 'config', 'gui_params.yaml')

    config_file_arg = DeclareLaunchArgument(
        'config_file',
        default_value=default_config,
        description='Path to gui_params.yaml'
    )

    gui_node = Node(
        package='manipulation_gui',
        executable='manipulation_gui_node',
        name='manipulation_gui',
        output='screen',
        parameters=[{
            'config_file': LaunchConfiguration('config_file')
        }]
    )

    return LaunchDescription([
        config_file_arg,
        gui_node
    ])
