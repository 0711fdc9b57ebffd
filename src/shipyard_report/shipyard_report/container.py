from __future__ import annotations

from dataclasses import dataclass

from .activity_log.mysql_activity_log_repository import MySQLActivityLogRepository
from .activity_log.service import ActivityLogService
from .bastp.materials import MaterialControlService
from .bastp.mysql_bastp_repository import MySQLBastpRepository, MySQLGeneralServiceRepository
from .bastp.mysql_material_repository import MySQLMaterialRepository
from .bastp.service import BastpService
from .core.constants import BASTP_BUCKET, EVIDENCE_BUCKET, PERMIT_BUCKET
from .dashboard.service import DashboardService
from .database.connection import DBConfig, DatabaseConnection
from .exports.service import ExportService
from .invoices.mysql_invoice_repository import MySQLInvoiceRepository
from .invoices.service import InvoiceService
from .permits.mysql_permit_repository import MySQLPermitRepository
from .permits.service import PermitService
from .progress.mysql_progress_repository import MySQLWorkProgressRepository
from .progress.service import ProgressService
from .storage.document_store import LocalDocumentStore
from .users.mysql_profile_repository import MySQLProfileRepository
from .users.service import AuthService, UserService
from .verification.mysql_verification_repository import (
    MySQLOperationVerificationRepository,
    MySQLWorkVerificationRepository,
)
from .verification.service import VerificationService
from .vessels.mysql_vessel_repository import MySQLVesselRepository
from .vessels.service import VesselService
from .work_details.mysql_work_details_repository import MySQLWorkDetailsRepository
from .work_details.service import WorkDetailsService
from .work_orders.mysql_work_order_repository import MySQLWorkOrderRepository
from .work_orders.service import WorkOrderService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    store: LocalDocumentStore

    profiles_repo: MySQLProfileRepository
    vessels_repo: MySQLVesselRepository
    work_orders_repo: MySQLWorkOrderRepository
    work_details_repo: MySQLWorkDetailsRepository
    progress_repo: MySQLWorkProgressRepository
    permits_repo: MySQLPermitRepository
    bastp_repo: MySQLBastpRepository
    general_services_repo: MySQLGeneralServiceRepository
    materials_repo: MySQLMaterialRepository
    invoices_repo: MySQLInvoiceRepository

    activity_service: ActivityLogService
    auth_service: AuthService
    user_service: UserService
    vessel_service: VesselService
    work_order_service: WorkOrderService
    work_details_service: WorkDetailsService
    progress_service: ProgressService
    permit_service: PermitService
    verification_service: VerificationService
    bastp_service: BastpService
    material_service: MaterialControlService
    invoice_service: InvoiceService
    dashboard_service: DashboardService
    export_service: ExportService


def build_container(*, db_config: dict, upload_folder: str, secret_key: str) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)
    store = LocalDocumentStore(
        upload_folder,
        secret_key=secret_key,
        buckets=(PERMIT_BUCKET, EVIDENCE_BUCKET, BASTP_BUCKET),
    )

    profiles_repo = MySQLProfileRepository(conn)
    vessels_repo = MySQLVesselRepository(conn)
    work_orders_repo = MySQLWorkOrderRepository(conn)
    work_details_repo = MySQLWorkDetailsRepository(conn)
    progress_repo = MySQLWorkProgressRepository(conn)
    permits_repo = MySQLPermitRepository(conn)
    work_verifications_repo = MySQLWorkVerificationRepository(conn)
    operation_verifications_repo = MySQLOperationVerificationRepository(conn)
    bastp_repo = MySQLBastpRepository(conn)
    general_services_repo = MySQLGeneralServiceRepository(conn)
    materials_repo = MySQLMaterialRepository(conn)
    invoices_repo = MySQLInvoiceRepository(conn)
    activity_repo = MySQLActivityLogRepository(conn)

    activity_service = ActivityLogService(activity_repo)

    return Container(
        conn=conn,
        store=store,
        profiles_repo=profiles_repo,
        vessels_repo=vessels_repo,
        work_orders_repo=work_orders_repo,
        work_details_repo=work_details_repo,
        progress_repo=progress_repo,
        permits_repo=permits_repo,
        bastp_repo=bastp_repo,
        general_services_repo=general_services_repo,
        materials_repo=materials_repo,
        invoices_repo=invoices_repo,
        activity_service=activity_service,
        auth_service=AuthService(profiles_repo),
        user_service=UserService(profiles_repo),
        vessel_service=VesselService(
            vessels_repo, work_orders_repo, work_details_repo, progress_repo, activity_service
        ),
        work_order_service=WorkOrderService(
            work_orders_repo, vessels_repo, work_details_repo, progress_repo, activity_service
        ),
        work_details_service=WorkDetailsService(work_details_repo, work_orders_repo, progress_repo, activity_service),
        progress_service=ProgressService(progress_repo, work_details_repo, work_orders_repo, store, activity_service),
        permit_service=PermitService(permits_repo, work_orders_repo, store, activity_service),
        verification_service=VerificationService(
            work_verifications_repo,
            operation_verifications_repo,
            work_orders_repo,
            work_details_repo,
            progress_repo,
            activity_service,
        ),
        bastp_service=BastpService(
            bastp_repo,
            general_services_repo,
            vessels_repo,
            work_orders_repo,
            work_details_repo,
            progress_repo,
            store,
            activity_service,
        ),
        material_service=MaterialControlService(materials_repo, bastp_repo, work_details_repo, activity_service),
        invoice_service=InvoiceService(
            invoices_repo,
            work_orders_repo,
            vessels_repo,
            work_details_repo,
            progress_repo,
            bastp_repo,
            general_services_repo,
            activity_service,
        ),
        dashboard_service=DashboardService(
            work_orders_repo, work_details_repo, progress_repo, permits_repo, invoices_repo
        ),
        export_service=ExportService(
            vessels_repo,
            work_orders_repo,
            work_details_repo,
            progress_repo,
            invoices_repo,
            permits_repo,
            activity_service,
        ),
    )
