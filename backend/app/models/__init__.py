# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.
# Sans cet import, les FK comme profiles.company_id → companies.id échouent
# avec NoReferencedTableError si company.py n'est pas chargé avant profile.py.

from app.models.company import Company  # noqa: F401  (doit précéder les autres)
from app.models.profile import Profile  # noqa: F401
from app.models.links import Instrument, ParentStudent, StudentInstrument, StudentTeacher  # noqa: F401
from app.models.task import AssignedTask, TaskLibraryItem  # noqa: F401
from app.models.ledger import Reward, TicketTransaction  # noqa: F401
from app.models.session import ActiveRefreshToken, OneTimePin  # noqa: F401
from app.models.practice import PracticeLog  # noqa: F401
