# Routes package init
"""
Snapstream Backend — API Routes Package
=========================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource group.

Route Inventory:
    - auth.py:          /api/auth/register, /login, /change-password
    - feed.py:          /api/feed, /following, /my-posts, /user/{username}, /{post_id}
    - interactions.py:  /api/interactions/like, /comment, /comments
    - profile.py:       /api/profile/me, /update, /search, /follow, /picture, /{username}
    - upload.py:        /api/upload (create), /api/upload/{post_id} (serve image)
    - explore.py:       /api/explore/trending, /popular-users, /search
    - chat.py:          /api/chat/start-conversation, /conversations, /messages, /send, /mark-read
    - health.py:        /health

Design Principle:
    Routes are THIN. They extract input, resolve the caller's identity, call
    a service, and set status codes and headers. Errors are raised, never
    formatted here; main.py maps them to JSON.
"""
