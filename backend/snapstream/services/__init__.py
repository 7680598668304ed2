# Services package init
"""
Snapstream Backend — Services Layer
=====================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
Why:   Separation of concerns: routes handle HTTP, services handle business rules.
How:   Services are stateless singletons. Each call receives the request's
       AsyncSession and the caller's identity, applies the rules, and flushes.
       The session dependency commits or rolls back once per request.

Service Inventory:
    - FileService: Image validation (Pillow), storage, serving paths, cleanup
    - AuthService: Registration, login, password change
    - UserService: Profiles, follow graph, user search, profile pictures
    - PostService: Upload, feed listings, visibility rules, deletion
    - InteractionService: Likes and comments
    - ExploreService: Trending posts, popular users, search
    - ChatService: Conversations and messages
    - presenters: ORM row → response model projections shared by the above
"""
