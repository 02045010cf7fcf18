"""
axlbulk - requests AXL (Cisco Unified CM) desde fragmentos XML y archivos CSV
"""
__version__ = "0.1.1"
