"""
Dog Spotter Backend — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Services receive the request's AsyncSession per call; the ones with
       collaborators (DogService → BreedPredictor) get them at construction
       time in create_app().

Service Inventory:
    - geo:              Haversine distance and bounding boxes
    - BreedPredictor:   Interface for breed classification
    - MLService:        HTTP breed classifier client with circuit breaker
    - DogService:       Listing, search, map markers, owner-scoped CRUD
    - AuthService:      Registration, login, token validation
    - UserService:      Profile, password, stats, account deletion
    - UploadService:    Image storage on local disk
"""
