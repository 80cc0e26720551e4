from .conj_grad import as_operator, conj_grad, fill_struct
