# Import all models to ensure they are registered with SQLAlchemy
from .users import Users
from .orgs import Orgs
from .roles import Roles
from .role_policies import RolePolicy
from .user_organizations import UserOrganization, user_org_roles
