# =============================================================================
# Models Package — Domain Types and Pydantic V2 Schemas
# =============================================================================
#   - domain.py: dataclasses the services and agents work on
#   - requests.py / responses.py: the HTTP contract
#
# The API schemas never expose document text bodies; they are built from
# the domain objects with from_attributes.
# =============================================================================
