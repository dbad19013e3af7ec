"""
Shutterbox Backend — Services Layer
=====================================

What:  Business logic between routes (HTTP) and the database / storage.
How:   Services accept a session (and, where relevant, an upload provider)
       per call, apply the business rules and return response models.

Service Inventory:
    - TokenService:     Issue and verify signed identity tokens (JWT)
    - CredentialStore:  bcrypt hashing; drives the hash-once secret state
    - AuthService:      Register, login, profile and password workflows
    - upload/:          UploadProvider interface and its three backends
    - PhotoService:     Catalogue upload, listing, update and delete
    - AlbumService:     Curated albums of catalogue photos
    - ProductService:   Digital and print products of the shop
    - CartService:      Per-user cart lines with print options
    - OrderService:     Checkout snapshot and order administration
    - FavoriteService:  Favorited photos and products
    - pagination:       Shared count + page query helper

Routes stay thin: they extract request data, call a service, and return
its result. Everything here is testable without HTTP.
"""
