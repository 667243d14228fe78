from .json_utils import dumps
from .errors import engine_error_response, error_response
from .numbers import to_decimal, to_quantity, money
