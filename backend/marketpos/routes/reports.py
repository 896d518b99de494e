from flask import Blueprint, current_app, jsonify, request

from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/<kind>")
def report_route(kind: str):
    if kind not in reporting_service.REPORT_KINDS:
        return jsonify({"error": f"Unknown report type: {kind}"}), 404

    try:
        report = reporting_service.build_report(
            kind,
            from_date=request.args.get("from_date"),
            to_date=request.args.get("to_date"),
            low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
