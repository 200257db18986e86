"""
Dog Spotter Backend — API Routes Package
=========================================

Route Inventory:
    - auth.py:    POST /api/auth/register, POST /api/auth/login,
                  GET  /api/auth/me, POST /api/auth/validate
    - users.py:   GET/PUT/DELETE /api/users/me, GET /api/users/me/stats,
                  PUT  /api/users/me/password
    - dogs.py:    GET  /api/dogs, /api/dogs/map, /api/dogs/search, /api/dogs/my,
                  GET/PUT/DELETE /api/dogs/{id}, POST /api/dogs
    - upload.py:  POST/DELETE /api/upload, POST /api/upload/base64,
                  GET  /api/files/{path}
    - health.py:  GET  /health

Routes stay thin: read the request, call a service, shape the response.
"""
