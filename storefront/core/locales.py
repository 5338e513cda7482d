# storefront/core/locales.py

# Сообщения об ошибках (тексты витрины на испанском)
ERROR_OUT_OF_STOCK = "Sin stock para '{product_name}' ({variant_label})."
ERROR_PRODUCT_NOT_FOUND = "Producto no encontrado."
ERROR_PROFILE_NOT_FOUND = "Perfil de usuario no encontrado."
ERROR_CONFIG_NOT_FOUND = "Configuración del sitio no encontrada."
ERROR_NETWORK_UNAVAILABLE = "No se pudo conectar con el servidor."
ERROR_PRODUCT_NAME_REQUIRED = "¡Escribe el nombre del tesoro!"
ERROR_PRODUCT_NEEDS_VARIANT = "El producto necesita al menos un color o variante."
ERROR_VARIANT_LABEL_REQUIRED = "Cada variante necesita un nombre."
ERROR_INVALID_POINTS = "Los puntos deben ser un número entero mayor o igual a 0."
ERROR_INVALID_CREDENTIALS = "Email o contraseña incorrectos."

ERROR_PERMISSION_DENIED = "No tienes permiso para hacer esto. Vuelve a iniciar sesión."
ERROR_REMOTE_REJECTED = "El servidor rechazó los datos enviados."
