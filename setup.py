from setuptools import setup, find_packages

with open('requirements.txt') as f:
    requirements = [r.strip() for r in f if r.strip()]

setup(
    name='overlaysdk',
    version='0.1.0',
    description='Geometry and vision core for document annotation and measurement overlays',
    author='Dexsent Robotics',
    packages=find_packages(exclude=('tests', 'tests.*')),
    install_requires=requirements,
    extras_require={'test': ['pytest']},
    python_requires='>=3.8',
)
