from .basis import Basis
from .dirac import DiracBasis, DiracBasis2D, DiracBasis3D
