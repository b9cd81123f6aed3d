"""
Asset Library Tests Package.

Test modules for the Asset Library service:
- test_services: Service layer unit tests
- test_routes: API endpoint integration tests
- test_e2e: Full QC workflow scenarios through the HTTP API
"""
