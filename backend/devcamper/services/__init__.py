# Services package init
"""
DevCamper Backend — Services Layer
====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Services receive the request's AsyncSession as an argument, apply
       the resource rules and raise application exceptions; routes only
       translate HTTP to calls and results to response envelopes.

Service Inventory:
    - query_builder: filter / select / sort / paginate / populate pipeline
      shared by every listing endpoint
    - Geocoder (abstract) and MapQuestGeocoder: address → coordinates
    - BootcampService: bootcamp CRUD, cascade delete, radius search
    - CourseService: course CRUD, per-bootcamp listing
"""
