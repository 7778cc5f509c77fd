"""Latest joint-angle and end-effector position snapshots for the GUI."""

from typing import Dict, List, Optional, Sequence


# Order of the joint angle snapshot (4 arm joints + gripper)
JOINT_AND_TOOL_NAMES = ('joint1', 'joint2', 'joint3', 'joint4', 'gripper')

NUM_OF_JOINT_AND_TOOL = len(JOINT_AND_TOOL_NAMES)
NUM_OF_POSITION = 3


class StateCache:
    """Last-write-wins cache of telemetry read by the UI.

    Snapshots are replaced as a whole on every update and getters return
    copies, so readers never see a half-written buffer.
    """

    def __init__(self, joint_names: Sequence[str] = JOINT_AND_TOOL_NAMES):
        """Initialize zeroed snapshots for the given joint/tool names."""
        self._joint_names = tuple(joint_names)
        self._slots: Dict[str, int] = {
            name: index for index, name in enumerate(self._joint_names)
        }

        self._present_joint_angle: List[float] = [0.0] * len(self._joint_names)
        self._present_kinematics_position: List[float] = [0.0] * NUM_OF_POSITION

        # Every joint seen on the telemetry stream, not just the GUI slots
        self._joint_positions: Dict[str, float] = {}
        self._received = False

    @property
    def joint_names(self) -> tuple:
        return self._joint_names

    def update_joint_angles(self, names: Sequence[str], positions: Sequence[float]) -> None:
        """Copy matched positions into their fixed slots.

        Unknown names are ignored and names absent from the message keep
        their previous value. Messages with no known joint do not count
        as received telemetry.
        """
        angles = list(self._present_joint_angle)
        joint_positions = dict(self._joint_positions)
        matched = False

        for i, name in enumerate(names):
            if i >= len(positions):
                continue
            position = float(positions[i])
            joint_positions[name] = position
            slot = self._slots.get(name)
            if slot is not None:
                angles[slot] = position
                matched = True

        self._present_joint_angle = angles
        self._joint_positions = joint_positions
        if matched:
            self._received = True

    def update_kinematics_position(self, x: float, y: float, z: float) -> None:
        self._present_kinematics_position = [float(x), float(y), float(z)]

    def get_present_joint_angle(self) -> List[float]:
        return list(self._present_joint_angle)

    def get_present_kinematics_position(self) -> List[float]:
        return list(self._present_kinematics_position)

    def get_joint_positions(self) -> Dict[str, float]:
        """Return the latest position of every joint seen on the stream."""
        return dict(self._joint_positions)

    def get_joint_position(self, joint_name: str) -> Optional[float]:
        return self._joint_positions.get(joint_name)

    def has_joint_state(self) -> bool:
        """True once a message carrying at least one known joint has been cached."""
        return self._received
