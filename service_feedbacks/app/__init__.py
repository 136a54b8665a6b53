"""
FeedBacks service package.

Serves a community recommendation-sharing application whose document
collections are guarded by a declarative access policy. It provides:

- app.main: API surface for documents, chat, feedback and policy checks.
- app.catalog: Collections, entity schemas and write-time validators.
- app.rules: Predicate combinators, rule table and the policy engine.
- app.store: Policy-gated document store with real-time subscriptions.
- app.ai: Clients for the moderation and summarization flows.
- app.services: Data-access services used by the API.
- app.auth: Principal resolution from bearer tokens.

Guidelines:
- The policy engine is pure; pass the principal explicitly, never read it
  from ambient state.
- Every denial is the same PermissionDeniedError, whatever the cause.
- External AI failures fail closed: nothing is persisted.
"""
