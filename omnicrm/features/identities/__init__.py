"""
Contact identity feature package.

Everything needed to map emails, phones, handles and provider ids onto
CRM contacts lives here: normalization rules, the contact_identities
repository, the resolver service and its HTTP router.
"""

# Re-export the primary building blocks for easy access.
from .domain.models import Identity, IdentityKind, IdentityQuery  # noqa: F401
from .services.identity_resolver import IdentityResolver, identity_resolver  # noqa: F401
from .api.router import router as identity_router  # noqa: F401
