from setuptools import find_packages, setup

setup(
    name='jobserver',
    version='0.1.0',
    description='Job submission service joining a launcher and a job store',
    packages=find_packages(exclude=[
        'jobserver.test',
        'jobserver.test.*',
    ]),
    python_requires='>=3.8',
    install_requires=[
        'chardet',
        'python-dateutil',
        'requests',
        'simplejson',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        "console_scripts": [
            "jobserver = jobserver.main:main",
        ],
    }
)
