import os

from setuptools import find_packages, setup

long_description = ""
if os.path.exists("README.md"):
    with open("README.md", encoding="utf-8") as fh:
        long_description = fh.read()

requirements_path = "requirements.txt"
if os.path.exists(requirements_path):
    with open(requirements_path, encoding="utf-8") as fh:
        requirements = [
            line.strip()
            for line in fh
            if line.strip() and not line.startswith("#") and not line.startswith("-r")
        ]
else:
    requirements = ["rich>=13.0.0", "PyYAML>=6.0", "packaging>=23.0"]

setup(
    name="wpm-core",
    version="0.1.0",
    author="WPM Contributors",
    description="Package catalog, dependency planner and plan executor for a Windows package manager",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Installation/Setup",
        "Topic :: System :: Software Distribution",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0.0"],
    },
    include_package_data=True,
)
