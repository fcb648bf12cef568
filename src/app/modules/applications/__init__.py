"""
Internship Applications Module

Public intake of internship applications:
1. Signed form timing tokens
2. Submission through a layered anti-abuse pipeline
3. Public read-only view of a submitted application

API Endpoints:
- GET /form-token - Issue a form timing token
- POST /submit - Submit an application
- GET /forms/{id} - View a submitted application

Background Jobs (via APScheduler):
- throttle_sweep: purges expired throttle state
"""
