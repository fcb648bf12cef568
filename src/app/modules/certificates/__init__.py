"""
Certificates Module

Internship completion certificates:
1. Grading and year-scoped serial numbers
2. PDF rendering with a QR code linking to the verification view
3. Public verification of an issued certificate

API Endpoints:
- POST /certificates/generate - Issue for an existing application (admin)
- POST /certificates/generate-scratch - Create a student and issue (admin)
- GET /certificates/{id} - Public verification view
"""
