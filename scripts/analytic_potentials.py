import numpy as np


# Plummer sphere with a central point mass
def Phi_Plummer_BH(M, b, Mbh):
    func = lambda r: -M / np.sqrt(r**2 + b**2) - Mbh / r
    return func


# Dehnen (1993) gamma-model; gamma=1 is the Hernquist and gamma=2 the Jaffe potential
def Phi_Dehnen(M, a, gamma):
    if gamma == 2:
        return lambda r: M / a * np.log(r / (r + a))
    func = lambda r: -M / a / (2 - gamma) * (1 - (r / (r + a)) ** (2 - gamma))
    return func


# Cusp with a finite mass for use with a central point mass: f ~ h^-inner at small h and ~ h^-(inner+2) at large h
def df_cusp(norm=1.0, inner=0.25):
    func = lambda h: norm * h ** (-inner) / (1 + h) ** 2
    return func
