from setuptools import setup

setup(
    name='gencap',
    version='1.0',
    packages=['gencap', 'gencap.inputs', 'gencap.inputs.config', 'gencap.inputs.demand',
              'gencap.inputs.hourly_profiles', 'gencap.inputs.technology_characteristics'],
    package_data={'gencap.inputs.config': ['*.json'], 'gencap.inputs.demand': ['*.csv'],
                  'gencap.inputs.hourly_profiles': ['*.csv'], 'gencap.inputs.technology_characteristics': ['*.csv']},
    py_modules=['main'],
    install_requires=['numpy', 'pandas', 'pyomo', 'highspy', 'scipy', 'matplotlib', 'seaborn'],
    extras_require={'test': ['pytest']},
    python_requires='>=3.8',
    url='',
    license='',
    description='Single region generation and storage capacity expansion model'
)
