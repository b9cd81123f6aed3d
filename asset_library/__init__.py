"""
Asset Library Service.

Digital asset library with a QC approval workflow, a service/sub-service
link registry and master data administration.
"""

__version__ = '1.0.0'
