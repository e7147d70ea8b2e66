"""Constantes HTTP pour éviter les valeurs magiques dans le code.

Ce module définit les codes de statut HTTP utilisés par les routes et les gestionnaires d'erreurs
ainsi que les délais par défaut des appels sortants.
"""

# Codes de statut HTTP courants
HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_SERVER_ERROR = 500
HTTP_SERVICE_UNAVAILABLE = 503

# Seuil des erreurs serveur
HTTP_STATUS_SERVER_ERROR_MIN = 500

# Délais par défaut (secondes)
DEFAULT_PROVIDER_TIMEOUT = 30.0
DEFAULT_GEOCODE_TIMEOUT = 10.0
