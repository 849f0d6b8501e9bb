from .users import User
from .blacklisted_token import BlacklistedToken
from .profiles import Profile
from .soil_tests import SoilTest
from .crops import Crop
from .crop_recommendations import CropRecommendation
from .farm_tasks import FarmTask
from .disease_detections import DiseaseDetection
from .notifications import Notification

__all__ = [
    'User',
    'BlacklistedToken',
    'Profile',
    'SoilTest',
    'Crop',
    'CropRecommendation',
    'FarmTask',
    'DiseaseDetection',
    'Notification'
]
