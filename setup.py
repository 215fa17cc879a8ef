from setuptools import setup, find_packages

setup(
    name="classguard",
    version="1.0.0",
    description="Permanent file classification and data loss prevention guards",
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    install_requires=[
        'PyYAML>=6.0',
        'python-dotenv>=1.0.0',
        'watchdog>=3.0.0',
        'pyperclip>=1.8.2',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'classguard=classguard.__main__:main',
        ],
    },
)
