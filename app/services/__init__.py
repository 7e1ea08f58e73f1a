# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single aggregate:
#
#   user_service      CRUD for User plus the one-to-one Profile upsert
#   post_service      CRUD for Post, its category links and comments
#   category_service  CRUD for Category, slug lookup and popularity ranking
#   comment_service   CRUD for Comment with per-post and per-user listings
#   serializers       plain-dict shapes shared by the services
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
