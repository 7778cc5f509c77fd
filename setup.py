"""Setup for manipulation_gui package."""
from glob import glob
import os

from setuptools import find_packages, setup

package_name = 'manipulation_gui'

setup(
    name=package_name,
    version='0.0.1',
    packages=find_packages(exclude=['test']),
    data_files=[
        ('share/ament_index/resource_index/packages',
            ['resource/' + package_name]),
        ('share/' + package_name, ['package.xml']),
        (os.path.join('share', package_name, 'config'), glob('config/*.yaml')),
        (os.path.join('share', package_name, 'launch'), glob('launch/*.launch.py')),
    ],
    install_requires=[
        'setuptools',
        'PyYAML>=5.4',
    ],
    zip_safe=True,
    maintainer='robo',
    maintainer_email='barabashsr@gmail.com',
    description='GUI backend node for a MoveIt-controlled manipulator',
    license='MIT',
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'manipulation_gui_node = manipulation_gui.gui_node:main',
            'manipulation_gui_command = manipulation_gui.command_cli:main',
        ],
    },
)
