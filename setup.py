# Copyright 2025-2026 Dimensional Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from setuptools import find_packages, setup

setup(
    name="kinoplan",
    version="0.1.0",
    description="Kinematics, motion planning and execution supervision for robot arms and bases",
    python_requires=">=3.10",
    packages=find_packages(include=["kinoplan", "kinoplan.*"]),
    package_dir={"": "."},
    install_requires=[
        "numpy>=1.26",
        "scipy>=1.11",
        "structlog>=24.1",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "plum-dispatch>=2.3",
        "reactivex>=4.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
)
