"""
GUI node configuration.

Parameters are loaded from config/gui_params.yaml (installed to the package
share directory) and merged over DEFAULT_CONFIG. A missing or unreadable
file never stops the node; the defaults below are used instead.
"""

import copy
import os
from typing import Any, Dict, Optional

import yaml


PACKAGE_NAME = 'manipulation_gui'
CONFIG_KEY = 'manipulation_gui'

DEFAULT_CONFIG: Dict[str, Any] = {
    'joint_states_topic': 'joint_states',
    'loop_rate': 10.0,
    'planning_frame': 'base_footprint',
    'goal_tolerance': 0.1,
    'arm': {
        'group_name': 'arm',
        'joint_names': ['joint1', 'joint2', 'joint3', 'joint4'],
        'end_effector_link': 'end_effector_link',
    },
    'gripper': {
        'group_name': 'gripper',
        'joint_names': ['gripper'],
        'end_effector_link': '',
    },
    'planning': {
        'planning_time': 5.0,
        'num_planning_attempts': 1,
        'max_velocity_scaling_factor': 0.1,
        'max_acceleration_scaling_factor': 0.1,
        'goal_joint_tolerance': 0.0001,
        'goal_position_tolerance': 0.0001,
    },
    'interfaces': {
        'move_group_action': '/move_action',
        'execute_trajectory_action': '/execute_trajectory',
        'compute_fk_service': '/compute_fk',
    },
    'timeouts': {
        'server_timeout_sec': 5.0,
        'fk_timeout_sec': 1.0,
        'plan_timeout_margin_sec': 5.0,
        'execute_timeout_sec': 0.0,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any], logger=None) -> Dict[str, Any]:
    """
    Recursively merge override into a copy of base.

    Empty (null) values keep the default. A section that is a dict in base
    is only replaced by another dict; anything else is ignored with a warning.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if value is None:
            continue
        if isinstance(merged.get(key), dict):
            if not isinstance(value, dict):
                if logger:
                    logger.warning(f"Config section '{key}' must be a mapping, using defaults")
                continue
            merged[key] = _merge(merged[key], value, logger)
        else:
            merged[key] = value
    return merged


def default_config_file() -> str:
    """Path of gui_params.yaml in the installed package share directory."""
    from ament_index_python.packages import get_package_share_directory

    pkg_path = get_package_share_directory(PACKAGE_NAME)
    return os.path.join(pkg_path, 'config', 'gui_params.yaml')


def load_config(config_file: Optional[str], logger=None) -> Dict[str, Any]:
    """
    Load GUI node parameters from a YAML file.

    Args:
        config_file: Path to the YAML file, or None/'' for defaults only
        logger: Optional logger for load diagnostics

    Returns:
        Config dict with every key of DEFAULT_CONFIG present
    """
    if not config_file:
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            params = yaml.safe_load(f)

        if not isinstance(params, dict) or not isinstance(params.get(CONFIG_KEY), dict):
            if logger:
                logger.warning(f'No {CONFIG_KEY} section in {config_file}, using defaults')
            return copy.deepcopy(DEFAULT_CONFIG)

        config = _merge(DEFAULT_CONFIG, params[CONFIG_KEY], logger)
        if logger:
            logger.info(f'Loaded config from {config_file}')
        return config

    except FileNotFoundError:
        if logger:
            logger.warning(f'{config_file} not found, using defaults')
        return copy.deepcopy(DEFAULT_CONFIG)
    except yaml.YAMLError as e:
        if logger:
            logger.error(f'Error parsing {config_file}: {e}, using defaults')
        return copy.deepcopy(DEFAULT_CONFIG)
    except Exception as e:
        if logger:
            logger.error(f'Error loading {config_file}: {e}, using defaults')
        return copy.deepcopy(DEFAULT_CONFIG)
