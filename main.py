from flask import Flask, request, jsonify
from flask_cors import CORS
from billing import BillingProcessor, DomainDefaults
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (admin dashboard calls the API from the browser)
CORS(app)

# Initialize the billing processor
processor = BillingProcessor(DomainDefaults.from_env())


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Partner Billing Engine API",
        "version": "1.0",
        "endpoints": {
            "invoicing": "/invoicing [POST]",
            "breakdown": "/breakdown [POST]",
            "quota": "/quota [POST]",
            "compensation": "/compensation [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


def _run(name, handler):
    """Run a processor call on the JSON body and map errors to responses."""
    try:
        input_data = request.get_json(force=True, silent=True)

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        logger.info(f"Processing {name} request")

        result = handler(input_data)

        logger.info(f"{name} processed successfully")

        return jsonify(result), 200

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from the processor
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": f"Validation error: {str(e)}",
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


@app.route("/invoicing", methods=["POST"])
def invoicing():
    """Partner invoices for a billing month"""
    return _run("invoicing", processor.process_invoicing_from_dict)


@app.route("/breakdown", methods=["POST"])
def breakdown():
    """Commission breakdown for one deal"""
    return _run("breakdown", processor.process_breakdown_from_dict)


@app.route("/quota", methods=["POST"])
def quota():
    """Quota coloring and progress per organization"""
    return _run("quota", processor.process_quota_from_dict)


@app.route("/compensation", methods=["POST"])
def compensation():
    """Opener and closer commissions for a month"""
    return _run("compensation", processor.process_compensation_from_dict)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
