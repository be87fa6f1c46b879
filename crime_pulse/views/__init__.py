"""
Crime Pulse - Views

Row table, monthly year-over-year comparison and the stats view.
"""
