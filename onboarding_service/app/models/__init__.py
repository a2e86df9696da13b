# Import all models to ensure they are registered with SQLAlchemy
from .organizations import Organization
from .attachments import Attachment
