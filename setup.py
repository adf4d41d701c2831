from setuptools import setup, find_packages

setup(
    name="ppg_pulse",
    version="0.1.0",
    description="Streaming heart-rate estimation from fingertip camera brightness (PPG)",
    packages=find_packages(exclude=["tests"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "scipy>=1.10",
        "opencv-python>=4.8",
    ],
    extras_require={
        "dev": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "ppg-pulse=main:main",
        ]
    },
)
