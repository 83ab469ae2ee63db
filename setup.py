from setuptools import setup, find_packages

setup(
    name="autoscript",
    version="0.1.0",
    description="Record, replay and resume terminal sessions",
    author="",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "rich>=12.5.0",
        "click>=8.1.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "autoscript=autoscript.main:main",
        ],
    },
)
