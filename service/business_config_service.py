from copy import deepcopy
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
import logging
import os
from dotenv import load_dotenv

from model.business_model import BusinessConfig

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_ID = os.getenv("DEFAULT_BUSINESS_ID", "adpa")

DEFAULT_LEAVE_TYPES = [
    {
        "id": "annual", "name": "Annual Leave", "code": "ANNUAL", "max_days_per_year": 21,
        "requires_medical_certificate": False, "advance_notice_days": 7,
        "color": "bg-blue-100 text-blue-800", "icon": "🏖️", "is_active": True,
    },
    {
        "id": "sick", "name": "Sick Leave", "code": "SICK", "max_days_per_year": 10,
        "requires_medical_certificate": True, "advance_notice_days": 0,
        "color": "bg-red-100 text-red-800", "icon": "🏥", "is_active": True,
    },
    {
        "id": "emergency", "name": "Emergency Leave", "code": "EMERGENCY", "max_days_per_year": 5,
        "requires_medical_certificate": False, "advance_notice_days": 0,
        "color": "bg-orange-100 text-orange-800", "icon": "🚨", "is_active": True,
    },
    {
        "id": "maternity", "name": "Maternity Leave", "code": "MATERNITY", "max_days_per_year": 90,
        "requires_medical_certificate": True, "advance_notice_days": 30,
        "color": "bg-pink-100 text-pink-800", "icon": "👶", "is_active": True,
    },
    {
        "id": "paternity", "name": "Paternity Leave", "code": "PATERNITY", "max_days_per_year": 14,
        "requires_medical_certificate": False, "advance_notice_days": 14,
        "color": "bg-purple-100 text-purple-800", "icon": "👨‍👶", "is_active": True,
    },
    {
        "id": "unpaid", "name": "Unpaid Leave", "code": "UNPAID", "max_days_per_year": None,
        "requires_medical_certificate": False, "advance_notice_days": 14,
        "color": "bg-gray-100 text-gray-800", "icon": "💼", "is_active": True,
    },
]

DEFAULT_BUSINESS_CONFIG: Dict[str, Any] = {
    "id": "default",
    "name": "ADPA",
    "logo_url": None,
    "primary_color": "#3B82F6",
    "secondary_color": "#8B5CF6",
    "departments": ["IT", "HR", "Finance", "Operations", "Marketing", "Sales"],
    "leave_types": DEFAULT_LEAVE_TYPES,
    "working_days": [1, 2, 3, 4, 5],  # Monday to Friday
    "time_zone": "UTC",
    "currency": "USD",
    "date_format": "MM/DD/YYYY",
    "language": "en",
    "features": {
        "approval_workflow": True,
        "email_notifications": True,
        "calendar_integration": True,
        "report_generation": True,
        "mobile_app": False,
    },
    "trial_enabled": True,
    "trial_days": 14,
    "trial_features": ["approval_workflow", "email_notifications", "report_generation"],
}

# Built-in configurations, overridden by rows in business_configs
BUILTIN_BUSINESS_CONFIGS: Dict[str, Dict[str, Any]] = {
    "adpa": {"id": "adpa", "name": "ADPA", "language": "en"},
    "empresa-brasil": {
        "id": "empresa-brasil",
        "name": "Empresa Brasil",
        "language": "pt",
        "currency": "BRL",
        "date_format": "DD/MM/YYYY",
        "departments": ["TI", "RH", "Financeiro", "Operações", "Marketing", "Vendas"],
        "leave_types": [
            {
                "id": "ferias", "name": "Férias Anuais", "code": "ANNUAL", "max_days_per_year": 30,
                "requires_medical_certificate": False, "advance_notice_days": 15,
                "color": "bg-blue-100 text-blue-800", "icon": "🏖️", "is_active": True,
            },
            {
                "id": "medica", "name": "Licença Médica", "code": "SICK", "max_days_per_year": 15,
                "requires_medical_certificate": True, "advance_notice_days": 0,
                "color": "bg-red-100 text-red-800", "icon": "🏥", "is_active": True,
            },
        ],
    },
    "entreprise-france": {
        "id": "entreprise-france",
        "name": "Entreprise France",
        "language": "fr",
        "currency": "EUR",
        "date_format": "DD/MM/YYYY",
        "departments": ["IT", "RH", "Finance", "Opérations", "Marketing", "Ventes"],
        "leave_types": [
            {
                "id": "conges", "name": "Congés annuels", "code": "ANNUAL", "max_days_per_year": 25,
                "requires_medical_certificate": False, "advance_notice_days": 10,
                "color": "bg-blue-100 text-blue-800", "icon": "🏖️", "is_active": True,
            },
            {
                "id": "maladie", "name": "Congé maladie", "code": "SICK", "max_days_per_year": None,
                "requires_medical_certificate": True, "advance_notice_days": 0,
                "color": "bg-red-100 text-red-800", "icon": "🏥", "is_active": True,
            },
        ],
    },
}

CONFIG_FIELDS = [key for key in DEFAULT_BUSINESS_CONFIG if key != "id"]


class BusinessConfigService:
    def __init__(self, db: Session):
        self.db = db

    def _builtin(self, business_id: str) -> Dict[str, Any]:
        config = deepcopy(DEFAULT_BUSINESS_CONFIG)
        if business_id in BUILTIN_BUSINESS_CONFIGS:
            config.update(deepcopy(BUILTIN_BUSINESS_CONFIGS[business_id]))
        else:
            config["id"] = business_id
        return config

    def get_config(self, business_id: Optional[str] = None) -> Dict[str, Any]:
        """Effective configuration: defaults, then built-ins, then the stored row"""
        business_id = business_id or DEFAULT_BUSINESS_ID
        config = self._builtin(business_id)

        row = self.db.query(BusinessConfig).filter(BusinessConfig.id == business_id).first()
        if row:
            for field in CONFIG_FIELDS:
                value = getattr(row, field)
                if value is not None:
                    config[field] = value
        return config

    def update_config(self, business_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        current = self.get_config(business_id)
        current.update({key: value for key, value in updates.items() if key in CONFIG_FIELDS})

        row = self.db.query(BusinessConfig).filter(BusinessConfig.id == business_id).first()
        if not row:
            row = BusinessConfig(id=business_id, name=current["name"])
            self.db.add(row)

        for field in CONFIG_FIELDS:
            setattr(row, field, current[field])

        self.db.commit()
        logger.info(f"Business configuration updated for {business_id}: {sorted(updates.keys())}")
        return current

    def active_leave_types(self, business_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return [lt for lt in self.get_config(business_id)["leave_types"] if lt.get("is_active", True)]

    def trial_days(self, business_id: Optional[str] = None) -> int:
        return self.get_config(business_id).get("trial_days") or 14
