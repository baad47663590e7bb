import re
from setuptools import setup, find_packages

# Read version from image_comparator/__init__.py
with open("image_comparator/__init__.py") as f:
    version = re.search(r'__version__\s*=\s*"(.+?)"', f.read()).group(1)

setup(
    name="image_comparator",
    version=version,
    packages=find_packages(exclude=["test", "test.*", "scripts"]),
    install_requires=[
        "numpy",
        "opencv-python",
        "PySide6",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'image_comparator=image_comparator.main:main',
        ],
    },
)
