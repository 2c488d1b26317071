# Services package.
#
# Each module owns one slice of the domain:
#
#   identity_service      - signup, password / federated sign-in, sessions
#   username_service      - unique handle allocation from an email
#   blog_service          - blog create / edit / read (counts reads)
#   engagement_service    - likes and comments with their notifications
#   notification_service  - recipient-side notification queries
#   search_service        - feeds, blog search, user search, profiles
#   reconcile_service     - rebuilds counters from source documents
#
# Every operation takes an AsyncSession as its first argument and talks
# to it only through ``blogsphere.store.DocumentStore``; the router layer
# owns the transaction through the ``get_db`` dependency.
