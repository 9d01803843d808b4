from . import event, registry_state, ticket  # noqa: F401
