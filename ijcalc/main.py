"""FastAPI front end for the ijcalc engine."""

from __future__ import annotations

import hashlib
import json
import logging
from io import BytesIO
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse, StreamingResponse

from ijcalc.amounts import compute
from ijcalc.config import LOG_LEVEL
from ijcalc.entitlement import compute_entitlement_dates
from ijcalc.errors import InvalidClaimError
from ijcalc.exporter import build_daily_csv, build_result_docx
from ijcalc.models import (
	ClassRequest,
	EntitlementRequest,
	PayableWindowsRequest,
	Result,
	parse_claim,
	parse_model,
)
from ijcalc.payable import compute_payable_windows
from ijcalc.rate_table import load_rate_table
from ijcalc.rates import determine_class

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

VERSION = "0.1.0"


def _with_audit_hash(payload: dict[str, Any]) -> dict[str, Any]:
	material = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
	hash_value = hashlib.sha256(material.encode("utf-8")).hexdigest()
	response = dict(payload)
	response["audit_hash"] = hash_value
	return response


def _compute_result(payload: dict[str, Any]) -> Result:
	"""Validate a claim payload and run the full computation against the configured rate table."""

	try:
		request = parse_claim(payload)
		return compute(
			request.periods,
			request.context,
			load_rate_table(),
			include_daily=request.include_daily,
		)
	except FileNotFoundError as exc:
		raise HTTPException(status_code=500, detail=str(exc)) from exc
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc


app = FastAPI(title="ijcalc", version=VERSION)

app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)


@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
	"""Redirect callers to the interactive documentation."""
	return RedirectResponse(url="/docs")


@app.get("/health")
async def health_check() -> dict[str, object]:
	"""Return readiness metadata for external monitors."""
	return {"ok": True, "service": "ijcalc", "version": VERSION}


@app.post("/compute")
async def compute_claim(payload: dict[str, Any]) -> dict[str, Any]:
	"""Compute entitlement dates, payable days and amounts for a claim."""

	result = _compute_result(payload)
	return _with_audit_hash(result.model_dump(mode="json"))


@app.post("/entitlement-dates")
async def entitlement_dates(payload: dict[str, Any]) -> dict[str, Any]:
	"""Preview merged, classified periods with their entitlement dates."""

	try:
		request = parse_model(EntitlementRequest, payload)
	except InvalidClaimError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc

	periods = compute_entitlement_dates(
		request.periods,
		request.birth_date,
		request.prior_cumulative_days,
	)
	return {"periods": [period.model_dump(mode="json") for period in periods]}


@app.post("/payable-windows")
async def payable_windows(payload: dict[str, Any]) -> dict[str, Any]:
	"""Entitlement dates followed by payment windows, before the global caps."""

	try:
		request = parse_model(PayableWindowsRequest, payload)
	except InvalidClaimError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc

	periods = compute_entitlement_dates(
		request.periods,
		request.birth_date,
		request.prior_cumulative_days,
	)
	windows = compute_payable_windows(
		periods,
		request.attestation_date,
		request.last_payment_date,
		as_of_date=request.as_of_date,
		birth_date=request.birth_date,
	)
	return windows.model_dump(mode="json")


@app.post("/class")
async def benefit_class(payload: dict[str, Any]) -> dict[str, Any]:
	"""Derive the contribution class from the N-2 income."""

	try:
		request = parse_model(ClassRequest, payload)
	except InvalidClaimError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc

	resolved = determine_class(
		request.income,
		request.pass_value,
		assessed_by_default=request.assessed_by_default,
	)
	return {"class": resolved.value, "income": request.income, "pass_value": request.pass_value}


@app.post("/export/result_docx")
async def export_result_docx(payload: dict[str, Any]) -> StreamingResponse:
	"""Compute a claim and return the recap as a DOCX attachment."""

	result = _compute_result(payload)
	docx_bytes = build_result_docx(result)
	headers = {"Content-Disposition": 'attachment; filename="ij_recap.docx"'}
	return StreamingResponse(
		BytesIO(docx_bytes),
		media_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
		headers=headers,
	)


@app.post("/export/daily_csv")
async def export_daily_csv(payload: dict[str, Any]) -> StreamingResponse:
	"""Compute a claim and return one CSV row per paid day."""

	result = _compute_result(payload)
	headers = {"Content-Disposition": 'attachment; filename="ij_daily.csv"'}
	return StreamingResponse(
		BytesIO(build_daily_csv(result).encode("utf-8")),
		media_type="text/csv",
		headers=headers,
	)
