# ==========================================
# NATIVE GRAMMAR LIBRARY
# ==========================================
import ctypes
import functools

from tree_sitter import Language

# Must stay referenced for as long as any capsule created with it is alive.
_CAPSULE_NAME = b"tree_sitter.Language"

_PyCapsule_New = ctypes.pythonapi.PyCapsule_New
_PyCapsule_New.argtypes = [ctypes.c_void_p, ctypes.c_char_p, ctypes.c_void_p]
_PyCapsule_New.restype = ctypes.py_object


@functools.lru_cache(maxsize=None)
def _load_library():
    """Open the linked grammar library once per process."""
    return ctypes.CDLL(_LIBRARY_PATH)


class _Extern:
    """
    A `const TSLanguage *tree_sitter_<name>(void)` entry point in the grammar
    library, resolved on first call.
    """

    def __init__(self, symbol):
        self.symbol = symbol
        self._func = None

    def __call__(self):
        if self._func is None:
            func = getattr(_load_library(), self.symbol)
            func.argtypes = []
            func.restype = ctypes.c_void_p
            self._func = func
        return self._func()

    def __repr__(self):
        return f"_Extern({self.symbol!r})"


def _language(extern):
    """Call a grammar entry point and wrap the result as a tree_sitter.Language."""
    ptr = extern()
    if not ptr:
        raise RuntimeError(f"{extern.symbol}() returned NULL")
    return Language(_PyCapsule_New(ptr, _CAPSULE_NAME, None))
