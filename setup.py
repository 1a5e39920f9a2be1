# setup.py
from setuptools import setup, find_packages

setup(
    name="spendwise",
    version="0.1.0",
    description="Personal finance tracker with monthly budgets, spend tracking and reports",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "pyyaml>=5.3",
        "pandas>=1.1",
        "openpyxl>=3.0",
        "xlsxwriter>=3.0",
        "python-dotenv>=1.0",
        "mcp>=1.2,<2",
        "anyio>=4.0",
        "werkzeug>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "spendwise=finance_tracker.cli:main",
            "spendwise-web=finance_tracker.web:main",
            "spendwise-mcp=finance_tracker.mcp_server:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
