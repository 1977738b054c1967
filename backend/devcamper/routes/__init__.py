# Routes package init
"""
DevCamper Backend — API Routes Package
========================================

Route Inventory (prefix settings.api_prefix, default /api/v1):
    - bootcamps.py:  GET/POST        /bootcamps
                     GET/PUT/DELETE  /bootcamps/{id}
                     GET             /bootcamps/radius/{zipcode}/{distance}
    - courses.py:    GET             /courses
                     GET/POST        /bootcamps/{bootcamp_id}/courses
                     GET/PUT/DELETE  /courses/{id}
    - health.py:     GET             /health (no prefix)

Handlers stay thin: read the request, call a service with the request's
session, wrap the result in a response envelope.
"""
