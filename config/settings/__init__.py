"""Settings package for the chalet reservation service.

`base.py` holds the configuration shared by every environment; `dev.py`,
`test.py` and `prod.py` override it per environment.
"""
