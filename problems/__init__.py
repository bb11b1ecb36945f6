"""
Problem domains: binary (BFO), continuous (CFO) and TSP.
"""
