"""
Shutterbox Backend — API Routes Package
=========================================

Route Inventory:
    - auth.py:    POST /api/auth/register, POST /api/auth/login, GET /api/auth/check
    - users.py:   GET /api/users/me, PUT /api/users/me/password, PUT /api/users/me/profile,
                  /api/users/me/favorites (list, check, add, remove)
    - photos.py:  /api/photos (list, featured, detail, full, create, update, delete)
    - albums.py:  /api/albums (list, featured, detail; admin create, update, delete)
    - products.py: /api/products (list, latest, detail; admin full, create, update, delete)
    - cart.py:    GET /api/cart, PUT /api/cart/add, PUT /api/cart/remove
    - orders.py:  /api/orders (checkout, own orders; admin listing and status changes)
    - files.py:   GET /api/files/{path}   (local upload provider only)
    - health.py:  GET /health

Design Principle:
    Routes are THIN. They declare the access guard, extract request data,
    call a service and return its result. Protected routes list the guard
    before the DB session so a denied request never opens one.
"""
