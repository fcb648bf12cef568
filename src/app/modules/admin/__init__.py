"""
Admin Module

Password-protected review and export of submitted applications.

API Endpoints:
- POST /admin/verify - Check the admin password
- GET /admin/submissions - List applications
- GET /admin/submissions/export.csv - CSV export
- GET /admin/submissions/images.zip - Photos and signatures as ZIP
"""
